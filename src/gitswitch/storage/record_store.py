"""Encrypted JSON persistence for profiles, repositories and settings.

The whole state is one document::

    {"version": 1, "profiles": [...], "repositories": [...], "settings": {...}}

stored at ``<app data>/store.json`` and encrypted with AES-256-GCM when an
:class:`~gitswitch.privacy.encryption.EncryptionManager` is supplied. Every
call re-reads the document; every mutation is a read-modify-write under a
thread lock plus a file lock. Tokens never enter the document, they go to the
OS keychain through :class:`~gitswitch.configuration.settings.SecretStore`.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from filelock import FileLock
from pydantic import ValidationError as PydanticValidationError

from gitswitch.configuration.paths import ensure_dir
from gitswitch.configuration.settings import AppSettings, SecretStore
from gitswitch.errors import IOFailureError, ProfileNotFoundError, ValidationError
from gitswitch.models import Profile, Repository
from gitswitch.orchestrator.interfaces import RecordStoreBackend
from gitswitch.privacy.encryption import EncryptionManager

logger = logging.getLogger(__name__)

STORE_VERSION = 1


def _empty_document() -> Dict[str, Any]:
    return {
        "version": STORE_VERSION,
        "profiles": [],
        "repositories": [],
        "settings": AppSettings().model_dump(mode="json"),
    }


class RecordStore(RecordStoreBackend):
    """File-backed record store with keychain-held secrets."""

    def __init__(
        self,
        path: Path,
        *,
        secret_store: SecretStore,
        encryption: Optional[EncryptionManager] = None,
    ) -> None:
        self.path = Path(path)
        self.secret_store = secret_store
        self.encryption = encryption
        self._lock = threading.RLock()
        ensure_dir(self.path.parent, mode=0o700)
        self._file_lock = FileLock(str(self.path.with_suffix(".lock")))
        if self.encryption is not None:
            self.encryption.initialize()

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profiles(self) -> List[Profile]:
        return [Profile.model_validate(item) for item in self._read()["profiles"]]

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        for profile in self.get_profiles():
            if profile.id == profile_id:
                return profile
        return None

    def save_profile(self, profile: Profile) -> Profile:
        with self._mutate() as document:
            profiles = [Profile.model_validate(item) for item in document["profiles"]]
            replaced = False
            for index, existing in enumerate(profiles):
                if existing.id == profile.id:
                    profiles[index] = profile
                    replaced = True
            if not replaced:
                profiles.append(profile)
            if profile.is_default:
                profiles = [
                    p if p.id == profile.id or not p.is_default else p.model_copy(update={"is_default": False})
                    for p in profiles
                ]
            document["profiles"] = _dump_all(profiles)
        return profile

    def update_profile(self, profile_id: str, changes: Dict[str, Any]) -> Profile:
        """Apply ``changes`` to the stored profile inside one locked write.

        The merge starts from the stored record, so a default flag changed by
        another writer since the caller's read is kept. ``is_default`` in
        ``changes`` is handled here: True moves the flag to this profile,
        False hands it to the oldest other profile, and is ignored when this
        is the only one.
        """
        changes = dict(changes)
        make_default = changes.pop("is_default", None)
        with self._mutate() as document:
            profiles = [Profile.model_validate(item) for item in document["profiles"]]
            current = next((p for p in profiles if p.id == profile_id), None)
            if current is None:
                raise ProfileNotFoundError(profile_id)
            try:
                updated = Profile.model_validate({**current.model_dump(), **changes})
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid profile update: {exc}") from exc
            profiles = [updated if p.id == profile_id else p for p in profiles]

            default_id: Optional[str] = None
            if make_default is True:
                default_id = profile_id
            elif make_default is False and current.is_default:
                others = [p for p in profiles if p.id != profile_id]
                if others:
                    default_id = min(others, key=lambda p: p.created_at).id
                    logger.info("Default profile re-elected", extra={"profile_id": default_id})
            if default_id is not None:
                profiles = [p.model_copy(update={"is_default": p.id == default_id}) for p in profiles]
            document["profiles"] = _dump_all(profiles)
        return next(p for p in profiles if p.id == profile_id)

    def delete_profile(self, profile_id: str, *, elect_successor: bool = True) -> Optional[Profile]:
        with self._mutate() as document:
            profiles = [Profile.model_validate(item) for item in document["profiles"]]
            deleted = next((p for p in profiles if p.id == profile_id), None)
            if deleted is None:
                return None
            remaining = [p for p in profiles if p.id != profile_id]
            if deleted.is_default and elect_successor and remaining:
                successor = min(remaining, key=lambda p: p.created_at)
                remaining = [
                    p.model_copy(update={"is_default": True}) if p.id == successor.id else p
                    for p in remaining
                ]
                logger.info("Default profile re-elected", extra={"profile_id": successor.id})
            document["profiles"] = _dump_all(remaining)
        return deleted

    def set_default_profile(self, profile_id: str) -> Profile:
        with self._mutate() as document:
            profiles = [Profile.model_validate(item) for item in document["profiles"]]
            if not any(p.id == profile_id for p in profiles):
                raise ProfileNotFoundError(profile_id)
            profiles = [p.model_copy(update={"is_default": p.id == profile_id}) for p in profiles]
            document["profiles"] = _dump_all(profiles)
        return next(p for p in profiles if p.id == profile_id)

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def get_repositories(self) -> List[Repository]:
        return [Repository.model_validate(item) for item in self._read()["repositories"]]

    def get_repository(self, path: str) -> Optional[Repository]:
        for repository in self.get_repositories():
            if repository.path == path:
                return repository
        return None

    def save_repository(self, repository: Repository) -> None:
        self.save_repositories([repository])

    def save_repositories(self, repositories: Sequence[Repository]) -> None:
        with self._mutate() as document:
            merged: Dict[str, Dict[str, Any]] = {item["path"]: item for item in document["repositories"]}
            for repository in repositories:
                merged[repository.path] = repository.model_dump(mode="json")
            document["repositories"] = list(merged.values())

    def merge_scanned_repositories(
        self,
        repositories: Sequence[Repository],
        evaluate: Callable[[Repository], Repository],
    ) -> List[Repository]:
        """Upsert scan results while keeping each record's stored binding.

        The binding is read inside the same write, so a bind that lands while
        a scan is running survives it. ``evaluate`` recomputes status fields
        once the binding is known.
        """
        saved: List[Repository] = []
        with self._mutate() as document:
            merged: Dict[str, Dict[str, Any]] = {item["path"]: item for item in document["repositories"]}
            for repository in repositories:
                known = merged.get(repository.path)
                bound = known.get("bound_profile_id") if known else None
                record = evaluate(repository.model_copy(update={"bound_profile_id": bound}))
                merged[repository.path] = record.model_dump(mode="json")
                saved.append(record)
            document["repositories"] = list(merged.values())
        return saved

    def delete_repository(self, path: str) -> bool:
        with self._mutate() as document:
            before = len(document["repositories"])
            document["repositories"] = [item for item in document["repositories"] if item["path"] != path]
            return len(document["repositories"]) != before

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> AppSettings:
        return AppSettings.model_validate(self._read()["settings"])

    def update_settings(self, partial: Dict[str, Any]) -> AppSettings:
        with self._mutate() as document:
            current = AppSettings.model_validate(document["settings"])
            try:
                updated = current.with_updates(partial)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid settings: {exc}") from exc
            document["settings"] = updated.model_dump(mode="json")
        return updated

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def store_token(self, token_id: str, secret: str) -> None:
        self.secret_store.set_secret(token_id, secret)

    def get_token(self, token_id: str) -> Optional[str]:
        return self.secret_store.get_secret(token_id)

    def delete_token(self, token_id: str) -> bool:
        return self.secret_store.delete_secret(token_id)

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    @contextmanager
    def _mutate(self) -> Iterator[Dict[str, Any]]:
        with self._lock, self._file_lock:
            document = self._load()
            yield document
            self._store(document)

    def _read(self) -> Dict[str, Any]:
        with self._lock, self._file_lock:
            return self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return _empty_document()
        try:
            text = self.path.read_text(encoding="utf-8")
            data = self.encryption.decrypt_json(text) if self.encryption else json.loads(text)
        except json.JSONDecodeError as exc:
            raise IOFailureError("Record store is corrupted", details={"path": str(self.path)}) from exc
        except OSError as exc:
            raise IOFailureError("Record store is unreadable", details={"path": str(self.path)}) from exc
        document = _empty_document()
        document.update(data)
        return document

    def _store(self, document: Dict[str, Any]) -> None:
        if self.encryption is not None:
            text = self.encryption.encrypt_json(document)
        else:
            text = json.dumps(document, indent=2)
        tmp = self.path.with_suffix(".tmp")
        try:
            tmp.write_text(text, encoding="utf-8")
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise IOFailureError("Failed to write record store", details={"path": str(self.path)}) from exc


def _dump_all(profiles: Sequence[Profile]) -> List[Dict[str, Any]]:
    return [profile.model_dump(mode="json") for profile in profiles]
