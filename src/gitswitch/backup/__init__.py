"""Backup and restore of configuration files."""

from .engine import BackupEngine, guarded_write
from .models import BackupInfo, BackupType

__all__ = ["BackupEngine", "BackupInfo", "BackupType", "guarded_write"]
