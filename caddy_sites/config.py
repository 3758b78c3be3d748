"""Application configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

try:  # pragma: no cover - pwd isn't available on Windows
    import pwd
except ImportError:  # pragma: no cover
    pwd = None


def _determine_home() -> Path:
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and pwd:
        try:
            return Path(pwd.getpwnam(sudo_user).pw_dir)
        except KeyError:  # pragma: no cover - only when user missing from passwd
            pass
    return Path.home()


APP_DIR = Path(os.environ.get("CADDY_SITES_HOME", _determine_home() / ".caddy-sites"))
DB_PATH = Path(os.environ.get("CADDY_SITES_DB", APP_DIR / "index.db"))
CONFIG_DIR = Path(os.environ.get("CADDY_SITES_CONFIG_DIR", "/caddy-config"))
SITES_DIR = Path(os.environ.get("CADDY_SITES_DIR", CONFIG_DIR / "sites"))
CADDYFILE = Path(os.environ.get("CADDY_SITES_CADDYFILE", CONFIG_DIR / "Caddyfile"))
CADDY_BIN = os.environ.get("CADDY_SITES_CADDY_BIN")


@dataclass(slots=True)
class AppPaths:
    db_path: Path = DB_PATH
    sites_dir: Path = SITES_DIR
    caddyfile: Path = CADDYFILE
    caddy_bin: str | None = CADDY_BIN


def ensure_app_dir(path: Path | None = None) -> Path:
    """Ensure the data directory exists and return it."""
    target = path or APP_DIR
    target.mkdir(parents=True, exist_ok=True)
    return target
