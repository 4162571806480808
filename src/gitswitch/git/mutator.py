"""Reads and writes Git identity configuration.

Reads go straight to the config files through :mod:`gitswitch.git.config_parser`
so listing repositories never spawns processes. Writes go through the ``git``
binary (``git config --file`` for the global file, ``git -C <repo> config
--local`` for a repository), each one wrapped in a backup taken immediately
before and an audit entry appended after it succeeds. A failed write puts the
previous bytes back before the error propagates.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from gitswitch.backup.engine import guarded_write
from gitswitch.backup.models import BackupInfo, BackupType
from gitswitch.configuration.paths import ensure_dir, safe_read_text
from gitswitch.errors import ConfigWriteError, IOFailureError, RepositoryNotFoundError, ValidationError
from gitswitch.git.config_parser import parse_git_config
from gitswitch.git.remotes import parse_remote_url
from gitswitch.git.runner import NON_INTERACTIVE_ENV, CommandFailedError, CommandRunner
from gitswitch.models import AccessCheck, AccessOutcome, GlobalGitIdentity, Remote, Repository
from gitswitch.orchestrator.interfaces import AuditSink, BackupProvider, GitConfigBackend
from gitswitch.privacy.secure_logging import redact_text

logger = logging.getLogger(__name__)

_REMOTE_URL_KEY = re.compile(r"^remote\.(.+)\.url$")
_URL_USERINFO = re.compile(r"//[^/@\s]+@")


def _strip_userinfo(url: str) -> str:
    return _URL_USERINFO.sub("//", url)


class GitConfigMutator(GitConfigBackend):
    """Identity reads and backup-guarded identity writes."""

    def __init__(
        self,
        *,
        backups: BackupProvider,
        audit: AuditSink,
        global_config_path: Path,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.backups = backups
        self.audit = audit
        self.global_config_path = Path(global_config_path)
        self.runner = runner or CommandRunner("git")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_git_repo(self, directory: Path | str) -> bool:
        return (Path(directory) / ".git").exists()

    def local_config_path(self, repo_path: Path | str) -> Path:
        """Path of the repository's config file, following ``gitdir:`` links."""
        dot_git = Path(repo_path) / ".git"
        if dot_git.is_file():
            content = safe_read_text(dot_git) or ""
            for line in content.splitlines():
                if line.startswith("gitdir:"):
                    target = Path(line.split(":", 1)[1].strip())
                    if not target.is_absolute():
                        target = (Path(repo_path) / target).resolve()
                    commondir = safe_read_text(target / "commondir")
                    if commondir:
                        target = (target / commondir.strip()).resolve()
                    return target / "config"
        return dot_git / "config"

    def get_repo(self, path: Path | str) -> Optional[Repository]:
        repo_path = Path(path).expanduser().resolve()
        if not self.is_git_repo(repo_path):
            return None

        config = parse_git_config(self.local_config_path(repo_path))
        remotes = self._remotes_from(config)
        detected = next((remote.provider for remote in remotes if remote.provider), None)
        return Repository(
            path=str(repo_path),
            name=repo_path.name,
            remotes=remotes,
            local_email=config.get("user.email") or None,
            local_username=config.get("user.name") or None,
            detected_provider=detected,
        )

    def get_global_config(self) -> GlobalGitIdentity:
        config = parse_git_config(self.global_config_path)
        return GlobalGitIdentity(
            email=config.get("user.email") or None,
            username=config.get("user.name") or None,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_global_config(
        self, email: Optional[str] = None, username: Optional[str] = None
    ) -> Optional[BackupInfo]:
        values = _identity_values(email, username)
        target = self.global_config_path
        ensure_dir(target.parent)

        with guarded_write(self.backups, target, BackupType.GIT_CONFIG_GLOBAL, "Setting global git config") as backup:
            for key, value in values.items():
                self._write(["config", "--file", str(target), key, value])

        backup_id = backup.id if backup else None
        self.audit.log(
            "git_config",
            "global_updated",
            {"keys": sorted(values)},
            affected_paths=[target],
            backup_id=backup_id,
        )
        logger.info("Global git config set", extra={"keys": sorted(values), "backup_id": backup_id})
        return backup

    def set_local_config(
        self, repo_path: Path | str, email: Optional[str] = None, username: Optional[str] = None
    ) -> Optional[BackupInfo]:
        repo = self._require_repo(repo_path)
        values = _identity_values(email, username)
        target = self.local_config_path(repo)

        with guarded_write(
            self.backups, target, BackupType.GIT_CONFIG_LOCAL, f"Setting local config for {repo.name}"
        ) as backup:
            for key, value in values.items():
                self._write(["-C", str(repo), "config", "--local", key, value])

        backup_id = backup.id if backup else None
        self.audit.log(
            "git_config",
            "local_updated",
            {"repo_path": str(repo), "keys": sorted(values)},
            affected_paths=[target],
            backup_id=backup_id,
        )
        logger.info("Local git config set", extra={"repo": repo.name, "backup_id": backup_id})
        return backup

    def set_remote_url(self, repo_path: Path | str, remote_name: str, url: str) -> Optional[BackupInfo]:
        repo = self._require_repo(repo_path)
        if not remote_name or not url:
            raise ValidationError("remote name and url are required")
        target = self.local_config_path(repo)

        with guarded_write(
            self.backups, target, BackupType.GIT_CONFIG_LOCAL, f"Updating remote {remote_name} for {repo.name}"
        ) as backup:
            self._write(["-C", str(repo), "remote", "set-url", remote_name, url])

        backup_id = backup.id if backup else None
        self.audit.log(
            "git_config",
            "remote_updated",
            {"repo_path": str(repo), "remote": remote_name, "url": _strip_userinfo(url)},
            affected_paths=[target],
            backup_id=backup_id,
        )
        return backup

    # ------------------------------------------------------------------
    # Remote access
    # ------------------------------------------------------------------

    def validate_access(self, repo_path: Path | str) -> AccessCheck:
        repo = self._require_repo(repo_path)
        try:
            result = self.runner.run("fetch", "--dry-run", cwd=repo, env=NON_INTERACTIVE_ENV)
        except IOFailureError as exc:
            return AccessCheck(success=False, outcome=AccessOutcome.FAILED, message=exc.message)

        if result.returncode == 0:
            return AccessCheck(
                success=True, outcome=AccessOutcome.SUCCESS, message="Access validated successfully"
            )
        return classify_fetch_failure(result.stderr)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_repo(self, repo_path: Path | str) -> Path:
        repo = Path(repo_path).expanduser().resolve()
        if not self.is_git_repo(repo):
            raise RepositoryNotFoundError(str(repo))
        return repo

    def _write(self, args: List[str]) -> None:
        try:
            self.runner.run(*args, check=True)
        except CommandFailedError as exc:
            raise ConfigWriteError(exc.message, details=exc.details) from exc

    @staticmethod
    def _remotes_from(config: Dict[str, str]) -> List[Remote]:
        remotes: List[Remote] = []
        for key, value in config.items():
            match = _REMOTE_URL_KEY.match(key)
            if match:
                remotes.append(parse_remote_url(value, name=match.group(1)))
        return remotes


def classify_fetch_failure(stderr: str) -> AccessCheck:
    """Map ``git fetch`` stderr onto an access outcome."""
    if "Permission denied" in stderr or "Authentication failed" in stderr:
        return AccessCheck(
            success=False,
            outcome=AccessOutcome.PERMISSION_DENIED,
            message="Permission denied. Check your SSH key or token.",
        )
    if "Could not resolve host" in stderr or "Could not resolve hostname" in stderr:
        return AccessCheck(
            success=False,
            outcome=AccessOutcome.HOST_UNREACHABLE,
            message="Could not connect. Check your network connection.",
        )
    detail = redact_text(stderr).strip() or "unknown error"
    return AccessCheck(
        success=False,
        outcome=AccessOutcome.FAILED,
        message=f"Access validation failed: {detail}",
    )


def _identity_values(email: Optional[str], username: Optional[str]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if email:
        values["user.email"] = email
    if username:
        values["user.name"] = username
    if not values:
        raise ValidationError("email or username is required")
    return values
