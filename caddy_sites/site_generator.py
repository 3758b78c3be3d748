"""Render a SiteRecord back into canonical Caddyfile text."""
from __future__ import annotations

import re

from .site import INTERNAL_SNIPPET, TLS_MODE_AUTO, SiteRecord, wildcard_snippet_name

INDENT = "    "
_IMPORT_SAFE_BASE_RE = re.compile(r"[A-Za-z0-9.]+")
HEALTH_INTERVAL = "30s"
WEBSOCKET_HEADERS: tuple[str, ...] = (
    "header_up Host {host}",
    "header_up X-Real-IP {remote_host}",
    "header_up X-Forwarded-For {remote_host}",
    "header_up X-Forwarded-Proto {scheme}",
)


def generate_site(record: SiteRecord) -> str:
    """Return the canonical block text for ``record``.

    Only the structured fields are used; ``raw_content`` is ignored. Every
    block opened here is closed here, so the braces balance as long as the
    operator's ``extra_config`` does.
    """

    lines: list[str] = []

    if record.tags:
        lines.append(f"# @tags: {', '.join(record.tags)}")
    tls_comment = _tls_comment(record)
    if tls_comment:
        lines.append(tls_comment)

    header = record.domains_string or record.primary_domain
    lines.append(f"{header} {{")

    for snippet in record.snippets:
        if snippet:
            lines.append(f"{INDENT}import {snippet}")
    if record.is_internal and INTERNAL_SNIPPET not in record.snippets:
        lines.append(f"{INDENT}import {INTERNAL_SNIPPET}")
    wildcard_base = record.wildcard_base_domain
    if wildcard_base:
        lines.append(f"{INDENT}import {wildcard_snippet_name(wildcard_base)}")

    if record.basic_auth_enabled and record.basic_auth_users:
        lines.append(f"{INDENT}basic_auth {{")
        for user in record.basic_auth_users:
            lines.append(f"{INDENT * 2}{user}")
        lines.append(f"{INDENT}}}")

    extra = record.extra_config.strip()
    if extra:
        for line in extra.split("\n"):
            line = line.strip()
            if line:
                lines.append(f"{INDENT}{line}")

    lines.extend(render_reverse_proxy(record))
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_reverse_proxy(record: SiteRecord) -> list[str]:
    """Return the indented reverse_proxy clause for ``record``."""
    if record.uses_simple_proxy:
        return [f"{INDENT}reverse_proxy {record.target_host}:{record.target_port}"]

    backends = record.all_backends()
    inner = INDENT * 2
    lines = [f"{INDENT}reverse_proxy {' '.join(backends)} {{"]

    if len(backends) > 1 and record.lb_policy:
        lines.append(f"{inner}lb_policy {record.lb_policy}")

    if record.health_check_path:
        lines.append(f"{inner}health_uri {record.health_check_path}")
        lines.append(f"{inner}health_interval {HEALTH_INTERVAL}")

    if record.enable_websocket:
        lines.extend(f"{inner}{header}" for header in WEBSOCKET_HEADERS)

    if record.is_https_backend or record.timeout_seconds > 0:
        lines.append(f"{inner}transport http {{")
        if record.is_https_backend:
            lines.append(f"{INDENT * 3}tls_insecure_skip_verify")
        if record.timeout_seconds > 0:
            lines.append(f"{INDENT * 3}dial_timeout {record.timeout_seconds}s")
            lines.append(f"{INDENT * 3}response_header_timeout {record.timeout_seconds}s")
        lines.append(f"{inner}}}")

    lines.append(f"{INDENT}}}")
    return lines


def _tls_comment(record: SiteRecord) -> str | None:
    mode = record.tls_mode.strip()
    if not mode or mode == TLS_MODE_AUTO:
        return None
    base = record.wildcard_base_domain
    # The wildcard import round-trips only ASCII letters, digits and dots.
    if base and _IMPORT_SAFE_BASE_RE.fullmatch(base):
        return None
    return f"# @tls: {mode}"
