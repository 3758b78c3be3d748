"""Summaries over collections of site records."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from .site import SiteRecord

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(slots=True)
class SiteStats:
    total: int
    internal: int
    public: int
    with_auth: int
    tags: int


def all_tags(sites: Iterable[SiteRecord]) -> list[str]:
    return sorted({tag for site in sites for tag in site.tags})


def site_stats(sites: Iterable[SiteRecord]) -> SiteStats:
    sites = list(sites)
    internal = sum(1 for site in sites if site.is_internal)
    return SiteStats(
        total=len(sites),
        internal=internal,
        public=len(sites) - internal,
        with_auth=sum(1 for site in sites if site.basic_auth_enabled),
        tags=len(all_tags(sites)),
    )


def recent_changes(sites: Iterable[SiteRecord], limit: int) -> list[SiteRecord]:
    """Return up to ``limit`` sites, most recently modified first."""
    ordered = sorted(sites, key=_modified_key, reverse=True)
    return ordered[: max(limit, 0)]


def filter_sites(
    sites: Iterable[SiteRecord],
    *,
    tag: str | None = None,
    query: str | None = None,
) -> list[SiteRecord]:
    needle = query.lower() if query else None
    matched: list[SiteRecord] = []
    for site in sites:
        if tag and tag not in site.tags:
            continue
        if needle:
            haystack = [*site.domains, site.target_host, site.filename]
            if not any(needle in value.lower() for value in haystack):
                continue
        matched.append(site)
    return matched


def _modified_key(site: SiteRecord) -> datetime:
    if site.modified_at is None:
        return _OLDEST
    if site.modified_at.tzinfo is None:
        return site.modified_at.replace(tzinfo=timezone.utc)
    return site.modified_at
