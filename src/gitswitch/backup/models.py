"""Backup registry records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class BackupType(str, Enum):
    SSH_CONFIG = "ssh_config"
    GIT_CONFIG_GLOBAL = "git_config_global"
    GIT_CONFIG_LOCAL = "git_config_local"
    SSH_KEY = "ssh_key"


class BackupInfo(BaseModel):
    """One snapshot of a configuration file.

    Everything except ``restored`` is fixed at creation; use
    :meth:`mark_restored` to get the updated record.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    type: BackupType
    original_path: str
    backup_path: str
    original_hash: str
    reason: str
    restored: bool = False

    def mark_restored(self) -> "BackupInfo":
        return self.model_copy(update={"restored": True})
