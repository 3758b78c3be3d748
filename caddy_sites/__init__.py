"""Structured editing of Caddy reverse-proxy site blocks."""
from __future__ import annotations

from .site import SiteRecord
from .site_generator import generate_site
from .site_parser import parse_site

__version__ = "0.1.0"

__all__ = ["SiteRecord", "generate_site", "parse_site", "__version__"]
