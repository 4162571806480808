"""Cross-platform path resolution for Git, SSH and application data files."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

APP_NAME = "GitSwitch"


def get_home_dir() -> Path:
    return Path.home()


def get_ssh_dir() -> Path:
    return get_home_dir() / ".ssh"


def get_ssh_config_path() -> Path:
    return get_ssh_dir() / "config"


def get_global_git_config_path() -> Path:
    """Return the file git treats as the user's global configuration.

    ``$XDG_CONFIG_HOME/git/config`` wins when XDG_CONFIG_HOME is set,
    otherwise ``~/.gitconfig``.
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "git" / "config"
    return get_home_dir() / ".gitconfig"


def get_app_data_dir() -> Path:
    """Per-platform application data root."""
    home = get_home_dir()
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA") or home) / APP_NAME
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / APP_NAME
    return home / ".local" / "share" / APP_NAME


def get_backup_dir(app_data_dir: Optional[Path] = None) -> Path:
    return (app_data_dir or get_app_data_dir()) / "backups"


def get_audit_log_dir(app_data_dir: Optional[Path] = None) -> Path:
    return (app_data_dir or get_app_data_dir()) / "audit"


def ensure_dir(path: Path, *, mode: Optional[int] = None) -> Path:
    """Create ``path`` (and parents) if missing; apply ``mode`` on creation."""
    existed = path.exists()
    path.mkdir(parents=True, exist_ok=True)
    if mode is not None and not existed:
        try:
            os.chmod(path, mode)
        except PermissionError:
            logger.warning("Could not set directory mode", extra={"path": str(path)})
    return path


def path_exists(path: Path | str) -> bool:
    try:
        return Path(path).exists()
    except OSError:
        return False


def is_directory(path: Path | str) -> bool:
    try:
        return Path(path).is_dir()
    except OSError:
        return False


def is_file(path: Path | str) -> bool:
    try:
        return Path(path).is_file()
    except OSError:
        return False


def safe_read_text(path: Path | str) -> Optional[str]:
    """Read a text file, returning None when it does not exist.

    Any other failure (permissions, decoding) propagates.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.error("Failed to read file", extra={"path": str(path), "error": str(exc)})
        raise


def expand_tilde(path: Path | str) -> Path:
    text = str(path)
    if text == "~" or text.startswith("~/") or text.startswith("~\\"):
        return get_home_dir() / text[2:] if len(text) > 1 else get_home_dir()
    return Path(text)


def get_default_scan_dirs() -> List[Path]:
    """Directories that commonly hold working copies on this platform."""
    home = get_home_dir()
    if sys.platform == "win32":
        return [
            home / "Documents",
            home / "Projects",
            home / "Source",
            home / "Repos",
            home / "dev",
            Path("C:\\dev"),
            Path("C:\\Projects"),
            Path("D:\\Projects"),
            Path("D:\\dev"),
        ]
    if sys.platform == "darwin":
        return [
            home / "Projects",
            home / "Developer",
            home / "dev",
            home / "Code",
            home / "Documents" / "Projects",
        ]
    return [
        home / "Projects",
        home / "dev",
        home / "code",
        home / "repos",
        Path("/opt/projects"),
    ]
