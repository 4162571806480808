"""Component seams used by the orchestrator.

Each concrete component subclasses one of these; tests substitute in-memory
fakes. The orchestrator only ever talks to these interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from gitswitch.backup.models import BackupInfo, BackupType
    from gitswitch.configuration.settings import AppSettings
    from gitswitch.models import (
        AccessCheck,
        DiscoveredIdentity,
        DiscoveryOptions,
        DiscoveryResult,
        GlobalGitIdentity,
        Profile,
        Repository,
        SSHConfigEntry,
        SSHKeyInfo,
    )
    from gitswitch.privacy.audit import AuditLogEntry


class RecordStoreBackend(ABC):
    """Persistence for profiles, repositories, settings and tokens."""

    @abstractmethod
    def get_profiles(self) -> List["Profile"]:
        """Return all profiles in creation order."""

    @abstractmethod
    def get_profile(self, profile_id: str) -> Optional["Profile"]:
        """Return one profile or None."""

    @abstractmethod
    def save_profile(self, profile: "Profile") -> "Profile":
        """Upsert by id; a default profile unsets all others in the same write."""

    @abstractmethod
    def update_profile(self, profile_id: str, changes: Dict[str, Any]) -> "Profile":
        """Merge ``changes`` into the stored profile in one write."""

    @abstractmethod
    def delete_profile(self, profile_id: str, *, elect_successor: bool = True) -> Optional["Profile"]:
        """Remove a profile, re-electing a default when needed."""

    @abstractmethod
    def set_default_profile(self, profile_id: str) -> "Profile":
        """Make ``profile_id`` the only default."""

    @abstractmethod
    def get_repositories(self) -> List["Repository"]:
        """Return all known repositories."""

    @abstractmethod
    def get_repository(self, path: str) -> Optional["Repository"]:
        """Return one repository by absolute path."""

    @abstractmethod
    def save_repository(self, repository: "Repository") -> None:
        """Upsert by path."""

    @abstractmethod
    def save_repositories(self, repositories: Sequence["Repository"]) -> None:
        """Merge by path in one write."""

    @abstractmethod
    def merge_scanned_repositories(
        self,
        repositories: Sequence["Repository"],
        evaluate: Callable[["Repository"], "Repository"],
    ) -> List["Repository"]:
        """Upsert scan results, keeping stored bindings, in one write."""

    @abstractmethod
    def delete_repository(self, path: str) -> bool:
        """Forget a repository; False when unknown."""

    @abstractmethod
    def get_settings(self) -> "AppSettings":
        """Return the settings singleton."""

    @abstractmethod
    def update_settings(self, partial: Dict[str, Any]) -> "AppSettings":
        """Validate and apply a partial update."""

    @abstractmethod
    def store_token(self, token_id: str, secret: str) -> None:
        """Put a secret into the OS vault."""

    @abstractmethod
    def get_token(self, token_id: str) -> Optional[str]:
        """Read a secret from the OS vault."""

    @abstractmethod
    def delete_token(self, token_id: str) -> bool:
        """Remove a secret from the OS vault."""


class AuditSink(ABC):
    """Append-only audit trail.

    Subclasses implement :meth:`log`; the typed recorders below are shared.
    """

    @abstractmethod
    def log(
        self,
        category: str,
        action: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        affected_paths: Optional[Sequence[Path | str]] = None,
        reversible: bool = True,
        backup_id: Optional[str] = None,
    ) -> "AuditLogEntry":
        """Append one entry and return it."""

    @abstractmethod
    def get_logs(
        self,
        start_date: Any = None,
        end_date: Any = None,
        category: Optional[str] = None,
        limit: int = 100,
    ) -> List["AuditLogEntry"]:
        """Query entries newest-first."""

    @abstractmethod
    def export_logs(
        self,
        path: Path,
        start_date: Any = None,
        end_date: Any = None,
        category: Optional[str] = None,
    ) -> int:
        """Write entries to ``path`` as a JSON array; returns the count."""

    def log_profile_created(self, profile_id: str, label: str) -> "AuditLogEntry":
        return self.log("profile", "created", {"profile_id": profile_id, "label": label})

    def log_profile_updated(self, profile_id: str, changes: Sequence[str]) -> "AuditLogEntry":
        return self.log("profile", "updated", {"profile_id": profile_id, "changes": list(changes)})

    def log_profile_deleted(self, profile_id: str) -> "AuditLogEntry":
        return self.log("profile", "deleted", {"profile_id": profile_id})

    def log_repo_binding(
        self, repo_path: Path | str, profile_id: str, backup_id: Optional[str] = None
    ) -> "AuditLogEntry":
        return self.log(
            "repository",
            "bound",
            {"repo_path": str(repo_path), "profile_id": profile_id},
            affected_paths=[Path(repo_path) / ".git" / "config"],
            backup_id=backup_id,
        )

    def log_ssh_config_updated(
        self, host: str, operation: str, config_path: Path | str, backup_id: Optional[str] = None
    ) -> "AuditLogEntry":
        return self.log(
            "ssh",
            "config_updated",
            {"host": host, "operation": operation},
            affected_paths=[config_path],
            backup_id=backup_id,
        )

    def log_ssh_key_generated(self, key_path: Path | str, key_type: str) -> "AuditLogEntry":
        return self.log(
            "ssh",
            "key_generated",
            {"key_path": str(key_path), "key_type": key_type},
            affected_paths=[key_path, f"{key_path}.pub"],
        )

    def log_discovery_completed(self, identities_found: int, repositories_found: int) -> "AuditLogEntry":
        return self.log(
            "discovery",
            "completed",
            {"identities_found": identities_found, "repositories_found": repositories_found},
            reversible=False,
        )

    def log_backup_restored(self, backup_id: str, original_path: Path | str) -> "AuditLogEntry":
        return self.log(
            "backup",
            "restored",
            {"backup_id": backup_id},
            affected_paths=[original_path],
            backup_id=backup_id,
        )


class BackupProvider(ABC):
    """Snapshots of configuration files taken before every write."""

    @abstractmethod
    def create_backup(self, path: Path, backup_type: "BackupType", reason: str) -> Optional["BackupInfo"]:
        """Snapshot ``path``; None when it does not exist."""

    @abstractmethod
    def restore_backup(self, backup_id: str) -> bool:
        """Write the snapshot back over its original path."""

    @abstractmethod
    def list_backups(self, backup_type: Optional["BackupType"] = None) -> List["BackupInfo"]:
        """Return registry entries, optionally filtered by type."""

    @abstractmethod
    def get_backup(self, backup_id: str) -> Optional["BackupInfo"]:
        """Return one registry entry."""

    @abstractmethod
    def delete_backup(self, backup_id: str) -> bool:
        """Remove body and entry; False when unknown."""

    @abstractmethod
    def cleanup_old_backups(self, retention_days: int) -> int:
        """Delete unrestored backups older than the cutoff."""


class SSHManager(ABC):
    """SSH key inspection, generation and ``~/.ssh/config`` editing."""

    @abstractmethod
    def list_keys(self) -> List["SSHKeyInfo"]:
        """Key pairs in the SSH directory."""

    @abstractmethod
    def generate_key(self, email: str, label: str, key_type: str = "ed25519") -> "SSHKeyInfo":
        """Create a new passphrase-less key pair."""

    @abstractmethod
    def get_public_key(self, private_key_path: str) -> Optional[str]:
        """Contents of the sibling ``.pub`` file."""

    @abstractmethod
    def get_ssh_config(self) -> List["SSHConfigEntry"]:
        """Parsed ``Host`` stanzas."""

    @abstractmethod
    def upsert_ssh_config_entry(self, entry: "SSHConfigEntry") -> Optional["BackupInfo"]:
        """Replace or append the stanza for ``entry.host``."""

    @abstractmethod
    def remove_ssh_config_entry(self, alias: str) -> bool:
        """Delete exactly the stanza for ``alias``."""


class GitConfigBackend(ABC):
    """Reads and writes Git configuration. Knows nothing about profiles."""

    @abstractmethod
    def is_git_repo(self, directory: Path | str) -> bool:
        """True when ``directory`` holds a ``.git`` entry."""

    @abstractmethod
    def get_repo(self, path: Path | str) -> Optional["Repository"]:
        """Repository with remotes and local identity, status unbound."""

    @abstractmethod
    def get_global_config(self) -> "GlobalGitIdentity":
        """Global ``user.email`` and ``user.name``."""

    @abstractmethod
    def set_global_config(
        self, email: Optional[str] = None, username: Optional[str] = None
    ) -> Optional["BackupInfo"]:
        """Back up then write the global identity."""

    @abstractmethod
    def set_local_config(
        self, repo_path: Path | str, email: Optional[str] = None, username: Optional[str] = None
    ) -> Optional["BackupInfo"]:
        """Back up then write a repository's local identity."""

    @abstractmethod
    def set_remote_url(self, repo_path: Path | str, remote_name: str, url: str) -> Optional["BackupInfo"]:
        """Back up then rewrite one remote URL."""

    @abstractmethod
    def validate_access(self, repo_path: Path | str) -> "AccessCheck":
        """Dry-run fetch and classify the outcome."""


class IdentityDiscovery(ABC):
    """Read-only scan for existing identities and repositories."""

    @abstractmethod
    def discover(self, options: Optional["DiscoveryOptions"] = None) -> "DiscoveryResult":
        """Run the enabled phases."""

    @abstractmethod
    def build_identity_suggestions(self, result: "DiscoveryResult") -> List["DiscoveredIdentity"]:
        """Deduplicated, labelled identities from a scan result."""

    @abstractmethod
    def has_existing_identities(self) -> bool:
        """Any SSH key or global email present."""

    @abstractmethod
    def get_default_scan_directories(self) -> List[str]:
        """Platform scan roots."""
