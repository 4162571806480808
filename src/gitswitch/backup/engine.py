"""Backup-before-write snapshots of Git and SSH configuration files.

Bodies are byte-for-byte copies stored in the backup directory next to a
``registry.json`` document. The registry is re-read on every access and
rewritten whole under a thread lock plus a file lock, so separate processes
and threads never lose entries.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from filelock import FileLock

from gitswitch.backup.models import BackupInfo, BackupType
from gitswitch.configuration.paths import ensure_dir
from gitswitch.errors import (
    BackupFileMissingError,
    BackupNotFoundError,
    IOFailureError,
)
from gitswitch.orchestrator.interfaces import AuditSink, BackupProvider

logger = logging.getLogger(__name__)

REGISTRY_NAME = "registry.json"


def sha256_bytes(data: bytes) -> str:
    return sha256(data).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _safe_timestamp(moment: datetime) -> str:
    """``2026-01-02T03:04:05.678Z`` with ``:`` and ``.`` replaced by ``-``."""
    stamp = moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    stamp = f"{stamp}.{moment.microsecond // 1000:03d}Z"
    return stamp.replace(":", "-").replace(".", "-")


class BackupEngine(BackupProvider):
    """Creates, lists and restores configuration snapshots."""

    def __init__(
        self,
        backup_dir: Path,
        *,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.backup_dir = Path(backup_dir)
        self.registry_path = self.backup_dir / REGISTRY_NAME
        self._audit = audit
        self._clock = clock
        self._lock = threading.RLock()
        ensure_dir(self.backup_dir, mode=0o700)
        self._file_lock = FileLock(str(self.registry_path.with_suffix(".lock")))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def create_backup(self, path: Path, backup_type: BackupType, reason: str) -> Optional[BackupInfo]:
        original = Path(path)
        if not original.exists():
            logger.debug("No file to back up", extra={"path": str(original)})
            return None

        try:
            content = original.read_bytes()
        except OSError as exc:
            raise IOFailureError(
                f"Cannot read {original} for backup", details={"path": str(original)}
            ) from exc

        backup_id = str(uuid.uuid4())
        timestamp = self._clock()
        backup_path = self.backup_dir / f"{original.name}_{_safe_timestamp(timestamp)}_{backup_id[:8]}"
        info = BackupInfo(
            id=backup_id,
            timestamp=timestamp,
            type=BackupType(backup_type),
            original_path=str(original),
            backup_path=str(backup_path),
            original_hash=sha256_bytes(content),
            reason=reason,
        )

        with self._locked():
            try:
                ensure_dir(self.backup_dir, mode=0o700)
                backup_path.write_bytes(content)
                os.chmod(backup_path, 0o600)
            except OSError as exc:
                raise IOFailureError(
                    f"Failed to write backup for {original}", details={"path": str(original)}
                ) from exc
            registry = self._load_registry()
            registry.append(info)
            self._save_registry(registry)

        logger.info(
            "Backup created",
            extra={"backup_id": backup_id, "backup_type": info.type.value, "reason": reason},
        )
        return info

    def restore_backup(self, backup_id: str) -> bool:
        with self._locked():
            registry = self._load_registry()
            index = _index_of(registry, backup_id)
            if index is None:
                raise BackupNotFoundError(backup_id)
            info = registry[index]

            body = Path(info.backup_path)
            if not body.exists():
                raise BackupFileMissingError(backup_id, info.backup_path)
            content = body.read_bytes()
            if sha256_bytes(content) != info.original_hash:
                logger.warning(
                    "Backup hash mismatch, restoring anyway",
                    extra={"backup_id": backup_id, "error_code": "INTEGRITY_MISMATCH"},
                )

            target = Path(info.original_path)
            try:
                ensure_dir(target.parent)
                target.write_bytes(content)
            except OSError as exc:
                raise IOFailureError(
                    f"Failed to restore {target}", details={"backup_id": backup_id}
                ) from exc

            registry[index] = info.mark_restored()
            self._save_registry(registry)

        logger.info("Backup restored", extra={"backup_id": backup_id})
        if self._audit is not None:
            self._audit.log_backup_restored(backup_id, info.original_path)
        return True

    def verify_backup(self, backup_id: str) -> bool:
        """Compare the stored hash with the body on disk without restoring."""
        info = self.get_backup(backup_id)
        if info is None:
            raise BackupNotFoundError(backup_id)
        body = Path(info.backup_path)
        if not body.exists():
            raise BackupFileMissingError(backup_id, info.backup_path)
        return sha256_bytes(body.read_bytes()) == info.original_hash

    # ------------------------------------------------------------------
    # Registry queries
    # ------------------------------------------------------------------

    def list_backups(self, backup_type: Optional[BackupType] = None) -> List[BackupInfo]:
        with self._locked():
            registry = self._load_registry()
        if backup_type is not None:
            wanted = BackupType(backup_type)
            return [info for info in registry if info.type == wanted]
        return registry

    def get_backup(self, backup_id: str) -> Optional[BackupInfo]:
        with self._locked():
            registry = self._load_registry()
        index = _index_of(registry, backup_id)
        return registry[index] if index is not None else None

    def delete_backup(self, backup_id: str) -> bool:
        with self._locked():
            registry = self._load_registry()
            index = _index_of(registry, backup_id)
            if index is None:
                return False
            info = registry.pop(index)
            Path(info.backup_path).unlink(missing_ok=True)
            self._save_registry(registry)
        logger.info("Backup deleted", extra={"backup_id": backup_id})
        return True

    def cleanup_old_backups(self, retention_days: int) -> int:
        cutoff = self._clock() - timedelta(days=retention_days)
        with self._locked():
            registry = self._load_registry()
            expired = [info for info in registry if info.timestamp < cutoff and not info.restored]
            for info in expired:
                Path(info.backup_path).unlink(missing_ok=True)
            if expired:
                expired_ids = {info.id for info in expired}
                self._save_registry([info for info in registry if info.id not in expired_ids])

        if expired:
            logger.info(
                "Old backups cleaned up",
                extra={"deleted": len(expired), "retention_days": retention_days},
            )
        return len(expired)

    # ------------------------------------------------------------------
    # Registry persistence
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock, self._file_lock:
            yield

    def _load_registry(self) -> List[BackupInfo]:
        if not self.registry_path.exists():
            return []
        try:
            payload = json.loads(self.registry_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise IOFailureError(
                "Backup registry is corrupted", details={"path": str(self.registry_path)}
            ) from exc
        return [BackupInfo.model_validate(item) for item in payload]

    def _save_registry(self, registry: List[BackupInfo]) -> None:
        payload = [info.model_dump(mode="json") for info in registry]
        tmp = self.registry_path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, self.registry_path)


def _index_of(registry: List[BackupInfo], backup_id: str) -> Optional[int]:
    for index, info in enumerate(registry):
        if info.id == backup_id:
            return index
    return None


@contextmanager
def guarded_write(
    backups: BackupProvider,
    path: Path,
    backup_type: BackupType,
    reason: str,
) -> Iterator[Optional[BackupInfo]]:
    """Back up ``path`` and put its pre-write bytes back if the body raises.

    A file that did not exist before the write is removed on failure.
    """

    target = Path(path)
    before = target.read_bytes() if target.exists() else None
    info = backups.create_backup(target, backup_type, reason)
    try:
        yield info
    except Exception:
        if before is None:
            target.unlink(missing_ok=True)
        else:
            target.write_bytes(before)
        logger.warning(
            "Write failed, previous contents put back",
            extra={"path": str(target), "backup_id": info.id if info else None},
        )
        raise
