"""Compare stored site files with their canonical rendering."""
from __future__ import annotations

from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
import difflib

from .site_generator import generate_site
from .site_parser import parse_site
from .store import SITE_SUFFIX, SiteStore

MAX_DIFF_LINES = 200


@dataclass(slots=True)
class DriftReport:
    target_path: Path
    in_sync: bool | None
    raw_hash: str | None
    canonical_hash: str | None
    diff: str | None
    error: str | None


def canonical_text(text: str, identity: str) -> str:
    return generate_site(parse_site(text, identity))


def check_site_drift(target_path: Path) -> DriftReport:
    """Report whether ``target_path`` already is in canonical form.

    A mismatch is not an error: hand-edited files are expected to drift in
    layout. The diff shows what saving the site through the editor would
    change.
    """
    try:
        raw_text = target_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return DriftReport(
            target_path=target_path,
            in_sync=None,
            raw_hash=None,
            canonical_hash=None,
            diff=None,
            error=f"No site file found at {target_path}",
        )
    except OSError as exc:
        return DriftReport(
            target_path=target_path,
            in_sync=None,
            raw_hash=None,
            canonical_hash=None,
            diff=None,
            error=f"Unable to read {target_path}: {exc}",
        )
    except UnicodeDecodeError as exc:
        return DriftReport(
            target_path=target_path,
            in_sync=None,
            raw_hash=None,
            canonical_hash=None,
            diff=None,
            error=f"Unable to decode {target_path} as UTF-8: {exc}",
        )

    identity = target_path.name.removesuffix(SITE_SUFFIX)
    rendered = canonical_text(raw_text, identity)
    raw_hash = sha256(raw_text.encode("utf-8")).hexdigest()
    canonical_hash = sha256(rendered.encode("utf-8")).hexdigest()

    if raw_hash == canonical_hash:
        return DriftReport(
            target_path=target_path,
            in_sync=True,
            raw_hash=raw_hash,
            canonical_hash=canonical_hash,
            diff=None,
            error=None,
        )

    diff_lines = difflib.unified_diff(
        raw_text.splitlines(),
        rendered.splitlines(),
        fromfile=str(target_path),
        tofile="canonical",
        lineterm="",
    )
    limited: list[str] = []
    for idx, line in enumerate(diff_lines):
        if idx >= MAX_DIFF_LINES:
            limited.append("... diff truncated ...")
            break
        limited.append(line)

    return DriftReport(
        target_path=target_path,
        in_sync=False,
        raw_hash=raw_hash,
        canonical_hash=canonical_hash,
        diff="\n".join(limited),
        error=None,
    )


def check_store_drift(store: SiteStore) -> list[DriftReport]:
    return [check_site_drift(path) for path in store.site_files()]


def summarise_drift(report: DriftReport) -> str:
    if report.error:
        return f"Drift: {report.error}"
    if report.in_sync is True:
        return f"Drift: {report.target_path} is canonical"
    if report.in_sync is False:
        return f"Drift: {report.target_path} differs from its canonical form"
    return "Drift: status unknown"
