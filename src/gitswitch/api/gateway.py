"""Async request/response boundary over the orchestrators.

Every public coroutine runs its component call on a worker thread and returns
a plain-JSON :class:`~gitswitch.api.results.Result` envelope. Nothing raised
below this layer escapes it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from gitswitch.api.results import error_result, ok
from gitswitch.api.services import GitSwitchServices, build_services
from gitswitch.backup import BackupType
from gitswitch.configuration import GitSwitchConfig
from gitswitch.errors import BackupNotFoundError, PublicKeyNotFoundError, ValidationError
from gitswitch.models import DiscoveryOptions, ScanOptions

logger = logging.getLogger(__name__)

# Channel name → GitSwitchAPI method.
CHANNELS: Dict[str, str] = {
    "profiles.list": "list_profiles",
    "profiles.get": "get_profile",
    "profiles.create": "create_profile",
    "profiles.update": "update_profile",
    "profiles.delete": "delete_profile",
    "profiles.setDefault": "set_default_profile",
    "profiles.switchGlobal": "switch_global",
    "profiles.getCurrentGlobal": "get_current_global",
    "repos.scan": "scan_repositories",
    "repos.get": "get_repository",
    "repos.list": "list_repositories",
    "repos.bind": "bind_repository",
    "repos.unbind": "unbind_repository",
    "repos.validate": "validate_repository",
    "discovery.start": "start_discovery",
    "discovery.cancel": "cancel_discovery",
    "discovery.import": "import_identities",
    "ssh.listKeys": "list_ssh_keys",
    "ssh.generateKey": "generate_ssh_key",
    "ssh.getPublicKey": "get_public_key",
    "backup.list": "list_backups",
    "backup.restore": "restore_backup",
    "backup.delete": "delete_backup",
    "backup.cleanup": "cleanup_backups",
    "audit.getLogs": "get_audit_logs",
    "audit.export": "export_audit_logs",
    "settings.get": "get_settings",
    "settings.update": "update_settings",
}


class AuditQuery(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category: Optional[str] = None
    limit: int = Field(100, ge=1, le=10_000)


def _backup_type(value: Optional[str]) -> Optional[BackupType]:
    if value is None:
        return None
    try:
        return BackupType(value)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in BackupType)
        raise ValidationError(f"Unknown backup type {value!r}; expected one of {allowed}") from exc


class GitSwitchAPI:
    """Coroutine facade used by the desktop shell and the CLI."""

    def __init__(self, services: GitSwitchServices) -> None:
        self.services = services

    @classmethod
    def create(cls, config: Optional[GitSwitchConfig] = None, **kwargs: Any) -> "GitSwitchAPI":
        return cls(build_services(config, **kwargs))

    async def dispatch(self, channel: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Route a ``"profiles.create"``-style request to its method."""
        method_name = CHANNELS.get(channel)
        if method_name is None:
            return error_result(ValidationError(f"Unknown channel: {channel}")).to_dict()
        if payload is not None and not isinstance(payload, dict):
            return error_result(ValidationError(f"Payload for {channel} must be an object")).to_dict()
        method = getattr(self, method_name)
        try:
            return await method(**(payload or {}))
        except TypeError as exc:
            return error_result(ValidationError(f"Bad arguments for {channel}: {exc}")).to_dict()

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Dict[str, Any]:
        try:
            data = await asyncio.to_thread(func, *args, **kwargs)
        except Exception as exc:
            return error_result(exc).to_dict()
        return ok(data).to_dict()

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def list_profiles(self) -> Dict[str, Any]:
        return await self._call(self.services.profiles.list_profiles)

    async def get_profile(self, id: str) -> Dict[str, Any]:
        return await self._call(self.services.profiles.get_profile, id)

    async def create_profile(self, input: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call(self.services.profiles.create_profile, input)

    async def update_profile(self, input: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call(self.services.profiles.update_profile, input)

    async def delete_profile(self, id: str) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            self.services.profiles.delete_profile(id)
            return {"deleted": True}

        return await self._call(run)

    async def set_default_profile(self, id: str) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            self.services.profiles.set_default(id)
            return {"success": True}

        return await self._call(run)

    async def switch_global(self, id: str) -> Dict[str, Any]:
        return await self._call(self.services.profiles.switch_global, id)

    async def get_current_global(self) -> Dict[str, Any]:
        return await self._call(self.services.profiles.get_current_global)

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    async def scan_repositories(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            result = self.services.repositories.scan_repositories(ScanOptions.model_validate(options or {}))
            return {
                "repositories": result.repositories,
                "duration": result.duration_ms,
                "errors": result.errors,
            }

        return await self._call(run)

    async def get_repository(self, path: str) -> Dict[str, Any]:
        return await self._call(self.services.repositories.get_repository, path)

    async def list_repositories(self) -> Dict[str, Any]:
        return await self._call(self.services.repositories.list_repositories)

    async def bind_repository(
        self, repo_path: str, profile_id: str, update_remotes: bool = False
    ) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            result = self.services.repositories.bind_repository(
                repo_path, profile_id, update_remotes=update_remotes
            )
            return {"bound": result["bound"], "profile": result["profile"]}

        return await self._call(run)

    async def unbind_repository(self, repo_path: str) -> Dict[str, Any]:
        return await self._call(self.services.repositories.unbind_repository, repo_path)

    async def validate_repository(self, repo_path: str) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            check = self.services.repositories.validate_repository(repo_path)
            return {"success": check.success, "message": check.message, "outcome": check.outcome}

        return await self._call(run)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def start_discovery(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        def run() -> Any:
            self.services.discovery.cancel_event.clear()
            return self.services.profiles.discover(DiscoveryOptions.model_validate(options or {}))

        return await self._call(run)

    async def cancel_discovery(self) -> Dict[str, Any]:
        self.services.discovery.cancel_event.set()
        return ok({"cancelled": True}).to_dict()

    async def import_identities(self, identities: List[Dict[str, Any]]) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            profiles = self.services.profiles.import_from_discovery(identities)
            return {"imported": len(profiles), "profiles": profiles}

        return await self._call(run)

    # ------------------------------------------------------------------
    # SSH
    # ------------------------------------------------------------------

    async def list_ssh_keys(self) -> Dict[str, Any]:
        return await self._call(self.services.ssh.list_keys)

    async def generate_ssh_key(self, email: str, label: str, key_type: str = "ed25519") -> Dict[str, Any]:
        return await self._call(self.services.ssh.generate_key, email, label, key_type)

    async def get_public_key(self, path: str) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            public_key = self.services.ssh.get_public_key(path)
            if public_key is None:
                raise PublicKeyNotFoundError(path)
            return {"public_key": public_key}

        return await self._call(run)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    async def list_backups(self, type: Optional[str] = None) -> Dict[str, Any]:
        return await self._call(lambda: self.services.backups.list_backups(_backup_type(type)))

    async def restore_backup(self, id: str) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            return {"restored": self.services.backups.restore_backup(id)}

        return await self._call(run)

    async def delete_backup(self, id: str) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            if not self.services.backups.delete_backup(id):
                raise BackupNotFoundError(id)
            return {"deleted": True}

        return await self._call(run)

    async def cleanup_backups(self) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            retention = self.services.store.get_settings().backup_retention_days
            return {"removed": self.services.backups.cleanup_old_backups(retention)}

        return await self._call(run)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    async def get_audit_logs(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 100,
    ) -> Dict[str, Any]:
        def run() -> Any:
            query = AuditQuery(start_date=start_date, end_date=end_date, category=category, limit=limit)
            return self.services.audit.get_logs(query.start_date, query.end_date, query.category, query.limit)

        return await self._call(run)

    async def export_audit_logs(self, path: Optional[str] = None) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            if path:
                target = Path(path).expanduser()
            else:
                stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
                target = self.services.config.app_data_dir / "exports" / f"audit-export-{stamp}.json"
            return {"exported": self.services.audit.export_logs(target), "path": str(target)}

        return await self._call(run)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> Dict[str, Any]:
        return await self._call(self.services.store.get_settings)

    async def update_settings(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        def run() -> Any:
            settings = self.services.store.update_settings(partial)
            self.services.audit.log("settings", "updated", {"keys": sorted(partial)})
            return settings

        return await self._call(run)
