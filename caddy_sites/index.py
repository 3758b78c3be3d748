"""Keep the SQLite site index in step with the site files."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path
import logging

from sqlalchemy import select

from . import models
from .db import session_scope
from .site import SiteRecord
from .store import SiteStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexSummary:
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)


@dataclass(slots=True)
class IndexEntry:
    filename: str
    filepath: str
    primary_domain: str
    domains: list[str]
    tags: list[str]
    target_url: str | None
    tls_mode: str
    is_internal: bool
    basic_auth_enabled: bool
    content_hash: str
    modified_at: datetime | None
    indexed_at: datetime


def content_hash(text: str) -> str:
    return sha256(text.encode("utf-8")).hexdigest()


def sync_index(store: SiteStore, db_path: Path | None = None) -> IndexSummary:
    """Upsert every stored site into the index and drop rows for deleted files.

    Rows are matched by filename; a row is rewritten only when the SHA-256 of
    the file content differs from the indexed hash.
    """

    summary = IndexSummary()
    sites = store.list_sites()
    indexed_at = datetime.now(timezone.utc)

    with session_scope(db_path=db_path) as session:
        existing = {row.filename: row for row in session.scalars(select(models.IndexedSite))}
        for site in sites:
            digest = content_hash(site.raw_content)
            row = existing.pop(site.filename, None)
            if row is None:
                row = models.IndexedSite(filename=site.filename)
                _store_site(row, site, digest, indexed_at)
                session.add(row)
                summary.added.append(site.filename)
                logger.debug("Indexed new site %s", site.filename)
                continue
            if row.content_hash == digest and row.filepath == site.filepath:
                summary.unchanged.append(site.filename)
                continue
            _store_site(row, site, digest, indexed_at)
            summary.updated.append(site.filename)
            logger.debug("Reindexed site %s (%s)", site.filename, digest[:12])
        for filename, row in existing.items():
            session.delete(row)
            summary.removed.append(filename)
            logger.debug("Removed %s from index", filename)

    return summary


def changed_sites(store: SiteStore, db_path: Path | None = None) -> list[str]:
    """Return filenames whose file content no longer matches the index."""
    with session_scope(db_path=db_path) as session:
        hashes = {row.filename: row.content_hash for row in session.scalars(select(models.IndexedSite))}
    changed: list[str] = []
    for site in store.list_sites():
        if hashes.get(site.filename) != content_hash(site.raw_content):
            changed.append(site.filename)
    return changed


def load_index(db_path: Path | None = None) -> list[IndexEntry]:
    with session_scope(db_path=db_path) as session:
        rows = session.scalars(select(models.IndexedSite).order_by(models.IndexedSite.primary_domain))
        return [_entry_from_row(row) for row in rows]


def _store_site(row: models.IndexedSite, site: SiteRecord, digest: str, indexed_at: datetime) -> None:
    row.filepath = site.filepath
    row.primary_domain = site.primary_domain
    row.target_url = site.target_url if site.target_host else None
    row.tls_mode = site.tls_mode
    row.is_internal = site.is_internal
    row.basic_auth_enabled = site.basic_auth_enabled
    row.content_hash = digest
    row.modified_at = site.modified_at
    row.indexed_at = indexed_at
    row.domains.clear()
    for index, domain in enumerate(site.domains):
        row.domains.append(models.SiteDomain(domain=domain, domain_index=index))
    row.tags.clear()
    for tag in dict.fromkeys(site.tags):
        row.tags.append(models.SiteTag(tag=tag))


def _entry_from_row(row: models.IndexedSite) -> IndexEntry:
    return IndexEntry(
        filename=row.filename,
        filepath=row.filepath,
        primary_domain=row.primary_domain,
        domains=[domain.domain for domain in row.domains],
        tags=[tag.tag for tag in row.tags],
        target_url=row.target_url,
        tls_mode=row.tls_mode,
        is_internal=row.is_internal,
        basic_auth_enabled=row.basic_auth_enabled,
        content_hash=row.content_hash,
        modified_at=row.modified_at,
        indexed_at=row.indexed_at,
    )
