"""Append-only, checksummed audit trail partitioned by UTC date.

Each entry is one JSON line in ``audit-YYYY-MM-DD.jsonl``. The checksum is a
SHA-256 over the canonical JSON of the entry without its ``checksum`` field
(keys sorted, compact separators, ``None`` fields omitted), so any edit to a
stored line is detectable by :meth:`AuditLog.verify_entry`. Mismatches are
reported, never corrected.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import date, datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field

from gitswitch.configuration.paths import ensure_dir
from gitswitch.orchestrator.interfaces import AuditSink
from gitswitch.privacy.redaction import RedactionPolicy, sanitize_details

logger = logging.getLogger(__name__)

AuditCategory = Literal[
    "profile", "repository", "ssh", "git_config", "discovery", "backup", "settings"
]

DEFAULT_QUERY_LIMIT = 100
EXPORT_LIMIT = 10_000
FILE_PREFIX = "audit-"
FILE_SUFFIX = ".jsonl"


class AuditLogEntry(BaseModel):
    """A single audit record as stored on disk."""

    id: str
    timestamp: datetime
    category: AuditCategory
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    affected_paths: Optional[List[str]] = None
    reversible: bool = True
    backup_id: Optional[str] = None
    checksum: str = ""

    def checksum_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", exclude={"checksum"})
        return {key: value for key, value in payload.items() if value is not None}

    def to_record(self) -> Dict[str, Any]:
        payload = self.checksum_payload()
        payload["checksum"] = self.checksum
        return payload


def generate_checksum(payload: Dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical JSON encoding of ``payload``."""

    canonical = json.dumps(
        {key: value for key, value in payload.items() if key != "checksum" and value is not None},
        sort_keys=True,
        separators=(",", ":"),
    )
    return sha256(canonical.encode("utf-8")).hexdigest()


def verify_checksum(payload: Dict[str, Any], checksum: str) -> bool:
    return generate_checksum(payload) == checksum


DateLike = Union[date, datetime]


class AuditLog(AuditSink):
    """Writes and queries the audit trail under ``log_dir``.

    Typed recorders such as ``log_profile_created`` come from :class:`AuditSink`.
    """

    def __init__(
        self,
        log_dir: Path,
        *,
        policy: Optional[RedactionPolicy] = None,
    ) -> None:
        self.log_dir = Path(log_dir)
        self._policy = policy
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def log(
        self,
        category: AuditCategory,
        action: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        affected_paths: Optional[Sequence[Path | str]] = None,
        reversible: bool = True,
        backup_id: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            category=category,
            action=action,
            details=sanitize_details(details, policy=self._policy),
            affected_paths=[str(p) for p in affected_paths] if affected_paths else None,
            reversible=reversible,
            backup_id=backup_id,
        )
        entry.checksum = generate_checksum(entry.checksum_payload())

        path = self._path_for(entry.timestamp.date())
        with self._lock:
            ensure_dir(self.log_dir)
            with path.open("a", encoding="utf-8") as fp:
                fp.write(json.dumps(entry.to_record(), separators=(",", ":")) + "\n")
        logger.debug(
            "Audit entry appended",
            extra={"category": category, "action": action, "audit_file": path.name},
        )
        return entry

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_logs(
        self,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        category: Optional[str] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[AuditLogEntry]:
        """Return matching entries newest-first, stopping at ``limit``."""

        results: List[AuditLogEntry] = []
        if limit <= 0:
            return results
        for entry in self._iter_newest_first(start_date, end_date, category):
            results.append(entry)
            if len(results) >= limit:
                break
        return results

    def export_logs(
        self,
        path: Path,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        category: Optional[str] = None,
    ) -> int:
        """Write the filtered entries as one JSON array; returns the count."""

        entries = self.get_logs(start_date, end_date, category, limit=EXPORT_LIMIT)
        path = Path(path)
        ensure_dir(path.parent)
        payload = [entry.to_record() for entry in entries]
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Exported audit log", extra={"count": len(payload), "path": str(path)})
        return len(payload)

    def verify_entry(self, entry: AuditLogEntry | Dict[str, Any]) -> bool:
        if isinstance(entry, AuditLogEntry):
            payload, checksum, entry_id = entry.checksum_payload(), entry.checksum, entry.id
        else:
            payload, checksum, entry_id = entry, entry.get("checksum", ""), entry.get("id")
        if verify_checksum(payload, checksum):
            return True
        logger.warning(
            "Audit entry failed checksum verification",
            extra={"entry_id": entry_id, "error_code": "INTEGRITY_MISMATCH"},
        )
        return False

    def verify_file(self, day: date) -> List[str]:
        """Return ids of entries in one partition whose checksum does not match."""

        path = self._path_for(day)
        if not path.exists():
            return []
        return [
            str(record.get("id"))
            for record in _iter_json_lines(path)
            if not self.verify_entry(record)
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _path_for(self, day: date) -> Path:
        return self.log_dir / f"{FILE_PREFIX}{day.isoformat()}{FILE_SUFFIX}"

    def _partition_files(self) -> List[Path]:
        if not self.log_dir.exists():
            return []
        return sorted(self.log_dir.glob(f"{FILE_PREFIX}*{FILE_SUFFIX}"), reverse=True)

    def _iter_newest_first(
        self,
        start_date: Optional[DateLike],
        end_date: Optional[DateLike],
        category: Optional[str],
    ) -> Iterator[AuditLogEntry]:
        start = _as_utc(start_date, end_of_day=False)
        end = _as_utc(end_date, end_of_day=True)
        for path in self._partition_files():
            day = _partition_date(path)
            if day is not None:
                if start is not None and day < start.date():
                    continue
                if end is not None and day > end.date():
                    continue
            for entry in reversed(list(self._read_entries(path))):
                if category and entry.category != category:
                    continue
                if start is not None and entry.timestamp < start:
                    continue
                if end is not None and entry.timestamp > end:
                    continue
                yield entry

    def _read_entries(self, path: Path) -> Iterable[AuditLogEntry]:
        with path.open("r", encoding="utf-8") as fp:
            for line_number, line in enumerate(fp, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield AuditLogEntry.model_validate_json(line)
                except ValueError:
                    logger.warning(
                        "Skipping unparsable audit line",
                        extra={"audit_file": path.name, "line": line_number},
                    )


def _iter_json_lines(path: Path) -> Iterable[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as fp:
        for line in fp:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping unparsable audit line", extra={"audit_file": path.name})


def _partition_date(path: Path) -> Optional[date]:
    stamp = path.name[len(FILE_PREFIX) : -len(FILE_SUFFIX)]
    try:
        return date.fromisoformat(stamp)
    except ValueError:
        return None


def _as_utc(value: Optional[DateLike], *, end_of_day: bool) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, datetime):
        clock = datetime.max.time() if end_of_day else datetime.min.time()
        return datetime.combine(value, clock, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
