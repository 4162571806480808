"""Typed settings management for GitSwitch.

Two layers live here. :class:`GitSwitchConfig` resolves runtime locations
(app data, SSH dir, global git config) and tool settings, with environment
overrides applied by :func:`load_config`. :class:`AppSettings` holds the
user-facing preferences persisted by the record store. A keyring-backed
:class:`SecretStore` keeps tokens out of every file GitSwitch writes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitswitch.configuration import paths
from gitswitch.errors import SecureStorageError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_KEYRING_SERVICE = "GitSwitch"
STORE_KEY_SERVICE_SUFFIX = ".store"


class GitSwitchConfig(BaseModel):
    """Runtime locations and tool settings."""

    app_data_dir: Path = Field(default_factory=paths.get_app_data_dir)
    ssh_dir: Path = Field(default_factory=paths.get_ssh_dir)
    global_git_config_path: Path = Field(default_factory=paths.get_global_git_config_path)
    keyring_service: str = Field(DEFAULT_KEYRING_SERVICE, min_length=1)
    encrypt_store: bool = Field(True, description="Encrypt store.json with a keyring-held key")
    git_binary: str = "git"
    ssh_keygen_binary: str = "ssh-keygen"
    command_timeout: float = Field(30.0, gt=0, le=600)

    @property
    def store_path(self) -> Path:
        return self.app_data_dir / "store.json"

    @property
    def backup_dir(self) -> Path:
        return paths.get_backup_dir(self.app_data_dir)

    @property
    def audit_dir(self) -> Path:
        return paths.get_audit_log_dir(self.app_data_dir)

    @property
    def ssh_config_path(self) -> Path:
        return self.ssh_dir / "config"

    @property
    def store_key_service(self) -> str:
        return f"{self.keyring_service}{STORE_KEY_SERVICE_SUFFIX}"


class AppSettings(BaseModel):
    """User preferences. Singleton; read and partially updated, never deleted."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    theme: Literal["dark", "light", "system"] = "dark"
    auto_scan_on_startup: bool = True
    show_mismatch_warnings: bool = True
    default_scan_dirs: List[str] = Field(default_factory=list)
    backup_retention_days: int = Field(30, ge=1, le=365)
    enable_pre_push_hook: bool = False
    first_run_complete: bool = False
    last_discovery_time: Optional[datetime] = None

    @field_validator("default_scan_dirs")
    def _strip_scan_dirs(cls, value: List[str]) -> List[str]:
        return [item.strip() for item in value if item and item.strip()]

    def with_updates(self, partial: Dict[str, Any]) -> "AppSettings":
        """Return a validated copy with ``partial`` applied.

        Unknown keys are rejected instead of silently dropped.
        """
        unknown = sorted(set(partial) - set(type(self).model_fields))
        if unknown:
            raise ValidationError(
                f"Unknown settings: {', '.join(unknown)}",
                details={"unknown_keys": unknown},
            )
        merged = self.model_dump(mode="python")
        merged.update(partial)
        return type(self).model_validate(merged)


@dataclass
class SecretStore:
    """Keyring abstraction for storing credentials.

    Backend failures surface as :class:`SecureStorageError`; nothing is ever
    written to disk in their place.
    """

    service_name: str = DEFAULT_KEYRING_SERVICE
    keyring_module: Any = field(default=keyring)

    def set_secret(self, key: str, value: str) -> None:
        try:
            self.keyring_module.set_password(self.service_name, key, value)
        except KeyringError as exc:
            logger.error(
                "Keyring rejected secret write",
                extra={"service": self.service_name, "key": key, "error_type": type(exc).__name__},
            )
            raise SecureStorageError(f"Could not store secret for {key}") from exc

    def get_secret(self, key: str) -> Optional[str]:
        try:
            return self.keyring_module.get_password(self.service_name, key)
        except KeyringError as exc:
            raise SecureStorageError(f"Could not read secret for {key}") from exc

    def delete_secret(self, key: str) -> bool:
        """Delete a secret; returns False when nothing was stored."""
        try:
            self.keyring_module.delete_password(self.service_name, key)
        except PasswordDeleteError:
            return False
        except KeyringError as exc:
            raise SecureStorageError(f"Could not delete secret for {key}") from exc
        return True


def load_config(overrides: Optional[Dict[str, Any]] = None) -> GitSwitchConfig:
    """Resolve runtime configuration from defaults, overrides and environment."""

    data: Dict[str, Any] = dict(overrides or {})
    try:
        data = _apply_env_overrides(data)
        return GitSwitchConfig.model_validate(data)
    except ValueError as exc:
        raise ValidationError(f"Invalid configuration: {exc}") from exc


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    _set_env_override(data, "app_data_dir", "GITSWITCH_DATA_DIR")
    _set_env_override(data, "ssh_dir", "GITSWITCH_SSH_DIR")
    _set_env_override(data, "global_git_config_path", "GITSWITCH_GIT_CONFIG")
    _set_env_override(data, "keyring_service", "GITSWITCH_KEYRING_SERVICE")
    _set_env_override(data, "encrypt_store", "GITSWITCH_ENCRYPT_STORE", cast_bool=True)
    _set_env_override(data, "command_timeout", "GITSWITCH_COMMAND_TIMEOUT", cast_float=True)
    return data


def _set_env_override(
    mapping: Dict[str, Any],
    key: str,
    env_name: str,
    *,
    cast_bool: bool = False,
    cast_float: bool = False,
) -> None:
    raw = os.getenv(env_name)
    if raw is None:
        return
    if cast_bool:
        mapping[key] = raw.lower() in {"1", "true", "yes"}
    elif cast_float:
        mapping[key] = float(raw)
    else:
        mapping[key] = paths.expand_tilde(raw) if key.endswith(("_dir", "_path")) else raw


def ensure_runtime_dirs(config: GitSwitchConfig) -> None:
    paths.ensure_dir(config.app_data_dir, mode=0o700)
    paths.ensure_dir(config.backup_dir, mode=0o700)
    paths.ensure_dir(config.audit_dir, mode=0o700)
