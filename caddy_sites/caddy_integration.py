"""Integration helpers for invoking the caddy binary."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from shutil import which
import logging
import subprocess

from .config import AppPaths, CADDY_BIN

logger = logging.getLogger(__name__)


class CaddyError(RuntimeError):
    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


@dataclass(slots=True)
class ReloadResult:
    success: bool
    message: str = ""
    error: str = ""
    validation_log: str = ""
    reload_log: str = ""


def _caddy_bin(paths: AppPaths | None = None) -> str:
    configured = (paths.caddy_bin if paths else None) or CADDY_BIN
    candidate = configured or which("caddy")
    if not candidate:
        raise CaddyError("Unable to locate caddy binary. Set CADDY_SITES_CADDY_BIN.")
    return candidate


def _run(cmd: list[str], failure: str) -> str:
    logger.debug("Running %s", " ".join(cmd))
    proc = subprocess.run(cmd, check=False, capture_output=True, text=True)
    output = (proc.stdout + proc.stderr).strip()
    if proc.returncode != 0:
        raise CaddyError(proc.stderr.strip() or failure, output=output)
    return output


def validate_config(config_path: Path, *, paths: AppPaths | None = None) -> str:
    bin_path = _caddy_bin(paths)
    cmd = [bin_path, "validate", "--config", str(config_path), "--adapter", "caddyfile"]
    return _run(cmd, "caddy validate failed")


def reload_caddy(config_path: Path, *, paths: AppPaths | None = None) -> str:
    bin_path = _caddy_bin(paths)
    cmd = [bin_path, "reload", "--config", str(config_path), "--adapter", "caddyfile"]
    return _run(cmd, "caddy reload failed")


def reload_with_validation(config_path: Path, *, paths: AppPaths | None = None) -> ReloadResult:
    """Validate ``config_path`` and reload Caddy only if validation passes."""
    try:
        validation_log = validate_config(config_path, paths=paths)
    except CaddyError as exc:
        return ReloadResult(
            success=False,
            error=f"Validation failed: {exc}",
            validation_log=exc.output,
        )

    try:
        reload_log = reload_caddy(config_path, paths=paths)
    except CaddyError as exc:
        return ReloadResult(
            success=False,
            error=f"Reload failed: {exc}",
            validation_log=validation_log,
            reload_log=exc.output,
        )

    return ReloadResult(
        success=True,
        message="Configuration validated and reloaded successfully",
        validation_log=validation_log,
        reload_log=reload_log,
    )
