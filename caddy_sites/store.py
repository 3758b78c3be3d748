"""File-backed storage for site blocks, one ``.caddy`` file per site."""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
import logging

from .site import SiteRecord, sanitize_filename
from .site_generator import generate_site
from .site_parser import parse_site

logger = logging.getLogger(__name__)

SITE_SUFFIX = ".caddy"
FALLBACK_FILENAME = "fallback.caddy"
SNIPPETS_FILENAME = "snippets.caddy"
WILDCARD_DIRNAME = "wildcard"
STANDARD_DIRNAME = "standard"


class StoreError(RuntimeError):
    pass


class SiteNotFoundError(StoreError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"site not found: {filename}")


class SiteExistsError(StoreError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"site already exists: {filename}")


def _with_suffix(filename: str) -> str:
    return filename if filename.endswith(SITE_SUFFIX) else filename + SITE_SUFFIX


def _is_site_file(path: Path) -> bool:
    name = path.name
    if not name.endswith(SITE_SUFFIX):
        return False
    return name not in (FALLBACK_FILENAME, SNIPPETS_FILENAME) and not name.startswith("_")


class SiteStore:
    """Read and write site files below ``sites_dir``.

    New files go to ``wildcard/`` or ``standard/`` depending on the site's TLS
    mode; files in the legacy flat layout are still found and loaded.
    """

    def __init__(self, sites_dir: Path):
        self.sites_dir = Path(sites_dir)

    @property
    def search_dirs(self) -> tuple[Path, ...]:
        return (
            self.sites_dir / WILDCARD_DIRNAME,
            self.sites_dir / STANDARD_DIRNAME,
            self.sites_dir,
        )

    def site_files(self) -> list[Path]:
        files: list[Path] = []
        seen: set[str] = set()
        for directory in self.search_dirs:
            if not directory.is_dir():
                continue
            for path in sorted(directory.iterdir()):
                # Earlier directories shadow later ones, like find_site_path.
                if not path.is_file() or not _is_site_file(path) or path.name in seen:
                    continue
                seen.add(path.name)
                files.append(path)
        return files

    def list_sites(self) -> list[SiteRecord]:
        sites: list[SiteRecord] = []
        for path in self.site_files():
            try:
                sites.append(self.load_site(path))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Could not load site %s: %s", path.name, exc)
        sites.sort(key=lambda site: site.primary_domain)
        return sites

    def find_site_path(self, filename: str) -> Path | None:
        name = _with_suffix(filename)
        for directory in self.search_dirs:
            candidate = directory / name
            if candidate.is_file():
                return candidate
        return None

    def get_site(self, filename: str) -> SiteRecord:
        path = self.find_site_path(filename)
        if path is None:
            raise SiteNotFoundError(filename)
        return self.load_site(path)

    def load_site(self, path: Path) -> SiteRecord:
        text = path.read_text(encoding="utf-8")
        stem = path.name[: -len(SITE_SUFFIX)] if path.name.endswith(SITE_SUFFIX) else path.name
        site = parse_site(text, stem)
        site.filename = stem
        site.filepath = str(path)
        site.modified_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return site

    def target_dir(self, site: SiteRecord) -> Path:
        return self.sites_dir / (WILDCARD_DIRNAME if site.is_wildcard else STANDARD_DIRNAME)

    def create_site(self, site: SiteRecord) -> Path:
        if not site.filename:
            site.filename = sanitize_filename(site.primary_domain)
        if self.find_site_path(site.filename) is not None:
            raise SiteExistsError(site.filename)
        directory = self.target_dir(site)
        path = directory / _with_suffix(site.filename)
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(generate_site(site), encoding="utf-8")
        site.filepath = str(path)
        logger.debug("Created site %s at %s", site.filename, path)
        return path

    def update_site(self, site: SiteRecord) -> Path:
        """Regenerate ``site`` into its file, moving it if its type changed."""
        if not site.filename:
            site.filename = sanitize_filename(site.primary_domain)
        old_path = Path(site.filepath) if site.filepath else None
        directory = self.target_dir(site)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / _with_suffix(site.filename)
        path.write_text(generate_site(site), encoding="utf-8")
        if old_path is not None and old_path != path and old_path.exists():
            old_path.unlink()
            logger.debug("Moved site %s from %s to %s", site.filename, old_path, path)
        site.filepath = str(path)
        return path

    def write_raw(self, filename: str, content: str) -> Path:
        """Store operator text as-is, replacing any existing file for the site."""
        path = self.find_site_path(filename) or self.sites_dir / _with_suffix(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def delete_site(self, filename: str) -> Path:
        path = self.find_site_path(filename)
        if path is None:
            raise SiteNotFoundError(filename)
        path.unlink()
        return path

    def duplicate_site(self, filename: str, new_domains: list[str]) -> SiteRecord:
        source = self.get_site(filename)
        copy = replace(
            source,
            domains=list(new_domains),
            tags=list(source.tags),
            snippets=list(source.snippets),
            additional_backends=list(source.additional_backends),
            basic_auth_users=list(source.basic_auth_users),
            raw_content="",
            filename="",
            filepath="",
            modified_at=None,
        )
        self.create_site(copy)
        return copy

    @property
    def fallback_path(self) -> Path:
        return self.sites_dir / FALLBACK_FILENAME

    def fallback_exists(self) -> bool:
        return self.fallback_path.is_file()

    def read_fallback(self) -> str:
        return self.fallback_path.read_text(encoding="utf-8")

    def write_fallback(self, content: str) -> Path:
        self.sites_dir.mkdir(parents=True, exist_ok=True)
        self.fallback_path.write_text(content, encoding="utf-8")
        return self.fallback_path
