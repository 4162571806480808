"""Repository scanning, binding and identity-mismatch evaluation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from gitswitch.configuration.paths import expand_tilde
from gitswitch.errors import ProfileNotFoundError, RepositoryNotFoundError
from gitswitch.git.remotes import ssh_url_for_alias
from gitswitch.models import (
    AccessCheck,
    AuthType,
    DiscoveryOptions,
    Profile,
    RemoteType,
    Repository,
    RepositoryStatus,
    ScanOptions,
    ScanResult,
)
from gitswitch.orchestrator.interfaces import (
    AuditSink,
    GitConfigBackend,
    IdentityDiscovery,
    RecordStoreBackend,
)
from gitswitch.orchestrator.profiles import ProfileOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_SCAN_DEPTH = 4


def _normalize(path: Path | str) -> str:
    return str(expand_tilde(str(path)).resolve())


def evaluate_binding(repository: Repository, profiles: Sequence[Profile]) -> Repository:
    """Return ``repository`` with status and mismatch fields recomputed.

    Unbound repositories never carry a mismatch. A binding to a profile that
    no longer exists is an error. A bound repository whose local identity
    differs from its profile is a mismatch.
    """
    update: Dict[str, Any] = {"has_mismatch": False, "mismatch_details": None}
    if not repository.bound_profile_id:
        update["status"] = RepositoryStatus.UNBOUND
        return repository.model_copy(update=update)

    profile = next((p for p in profiles if p.id == repository.bound_profile_id), None)
    if profile is None:
        update["status"] = RepositoryStatus.ERROR
        update["mismatch_details"] = "Bound profile no longer exists"
        return repository.model_copy(update=update)

    problems: List[str] = []
    if (repository.local_email or "").lower() != profile.email.lower():
        problems.append(f"email is {repository.local_email or 'not set'}, expected {profile.email}")
    if (repository.local_username or "") != profile.username:
        problems.append(f"user.name is {repository.local_username or 'not set'}, expected {profile.username}")

    if problems:
        update.update(
            status=RepositoryStatus.MISMATCH,
            has_mismatch=True,
            mismatch_details="; ".join(problems),
        )
    else:
        update["status"] = RepositoryStatus.BOUND
    return repository.model_copy(update=update)


class RepositoryOrchestrator:
    """Keeps the repository records in step with what is on disk."""

    def __init__(
        self,
        *,
        store: RecordStoreBackend,
        git: GitConfigBackend,
        audit: AuditSink,
        discovery: IdentityDiscovery,
        profiles: Optional[ProfileOrchestrator] = None,
    ) -> None:
        self.store = store
        self.git = git
        self.audit = audit
        self.discovery = discovery
        self.profiles = profiles

    def evaluate_binding(self, repository: Repository) -> Repository:
        return evaluate_binding(repository, self.store.get_profiles())

    def scan_repositories(self, options: Optional[ScanOptions] = None) -> ScanResult:
        options = options or ScanOptions()
        settings = self.store.get_settings()
        discovery = self.discovery.discover(
            DiscoveryOptions(
                scan_ssh_keys=False,
                scan_ssh_config=False,
                scan_git_config=False,
                scan_repositories=True,
                directories=options.directories,
                additional_repo_dirs=[] if options.directories is not None else settings.default_scan_dirs,
                max_depth=options.max_depth if options.max_depth is not None else DEFAULT_SCAN_DEPTH,
                exclude_patterns=options.exclude_patterns or [],
            )
        )

        repositories: List[Repository] = []
        errors = list(discovery.errors)
        for path in discovery.repositories:
            repository = self.git.get_repo(path)
            if repository is None:
                errors.append(f"Not a repository: {path}")
                continue
            repositories.append(repository)

        profiles = self.store.get_profiles()
        repositories = self.store.merge_scanned_repositories(
            repositories, lambda repository: evaluate_binding(repository, profiles)
        )
        logger.info(
            "Repository scan complete",
            extra={"repositories": len(repositories), "errors": len(errors)},
        )
        return ScanResult(repositories=repositories, duration_ms=discovery.duration_ms, errors=errors)

    def list_repositories(self) -> List[Repository]:
        profiles = self.store.get_profiles()
        return [evaluate_binding(repo, profiles) for repo in self.store.get_repositories()]

    def get_repository(self, repo_path: Path | str) -> Repository:
        """Fresh on-disk view of a repository merged with its stored binding."""
        path = _normalize(repo_path)
        repository = self.git.get_repo(path)
        if repository is None:
            raise RepositoryNotFoundError(path)
        known = self.store.get_repository(repository.path)
        if known is not None:
            repository = repository.model_copy(update={"bound_profile_id": known.bound_profile_id})
        return self.evaluate_binding(repository)

    def bind_repository(
        self, repo_path: Path | str, profile_id: str, *, update_remotes: bool = False
    ) -> Dict[str, Any]:
        """Write the profile identity into the repository's local config.

        With ``update_remotes`` an SSH profile also points the repository's SSH
        remotes at its host alias, so the profile's key is used on push.
        """
        path = _normalize(repo_path)
        profile = self._profile(profile_id)
        if not self.git.is_git_repo(path):
            raise RepositoryNotFoundError(path)

        backup = self.git.set_local_config(path, email=profile.email, username=profile.username)
        if update_remotes:
            self._point_remotes_at_alias(path, profile)

        repository = self.git.get_repo(path)
        if repository is None:
            raise RepositoryNotFoundError(path)
        repository = self.evaluate_binding(repository.model_copy(update={"bound_profile_id": profile.id}))
        self.store.save_repository(repository)
        self.audit.log_repo_binding(path, profile.id, backup.id if backup else None)
        logger.info("Repository bound", extra={"repo_path": path, "profile_id": profile.id})
        return {"bound": True, "profile": profile.label, "repository": repository}

    def unbind_repository(self, repo_path: Path | str) -> Dict[str, Any]:
        """Forget the association. The repository's local config is left as is."""
        path = _normalize(repo_path)
        known = self.store.get_repository(path)
        if known is not None:
            repository = known.model_copy(
                update={"bound_profile_id": None, "last_accessed": datetime.now(timezone.utc)}
            )
            self.store.save_repository(self.evaluate_binding(repository))
        self.audit.log("repository", "unbound", {"repo_path": path}, reversible=False)
        logger.info("Repository unbound", extra={"repo_path": path})
        return {"unbound": True}

    def validate_repository(self, repo_path: Path | str) -> AccessCheck:
        path = _normalize(repo_path)
        if not self.git.is_git_repo(path):
            raise RepositoryNotFoundError(path)
        return self.git.validate_access(path)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _profile(self, profile_id: str) -> Profile:
        if self.profiles is not None:
            return self.profiles.get_profile(profile_id)
        profile = self.store.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)
        return profile

    def _point_remotes_at_alias(self, path: str, profile: Profile) -> None:
        if profile.auth_type != AuthType.SSH or not profile.ssh_host_alias:
            return
        ssh_host = ProfileOrchestrator.provider_hostname(profile.provider)
        repository = self.git.get_repo(path)
        for remote in repository.remotes if repository else []:
            if remote.type != RemoteType.SSH or remote.host != ssh_host:
                continue
            if not remote.owner or not remote.repo:
                continue
            url = ssh_url_for_alias(profile.ssh_host_alias, remote.owner, remote.repo)
            self.git.set_remote_url(path, remote.name, url)
