"""Read-only discovery of existing Git/SSH identities and repositories.

Each phase can be switched off and fails independently: a phase error is
recorded in ``DiscoveryResult.errors`` and the remaining phases still run.
Nothing here writes to disk.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import List, Optional, Sequence

from gitswitch.configuration.paths import expand_tilde, get_default_scan_dirs
from gitswitch.discovery.labels import LabelRule, suggest_label
from gitswitch.discovery.walker import RepositoryWalker
from gitswitch.errors import GitSwitchError
from gitswitch.git.remotes import infer_provider
from gitswitch.models import (
    DiscoveredIdentity,
    DiscoveryOptions,
    DiscoveryResult,
    GitProvider,
    IdentitySource,
    SSHConfigEntry,
    SSHKeyInfo,
)
from gitswitch.orchestrator.interfaces import GitConfigBackend, IdentityDiscovery, SSHManager

logger = logging.getLogger(__name__)

# Phase failures are data, not exceptions. Anything a phase can raise is
# recorded: our own typed errors, filesystem errors and malformed input.
PHASE_ERRORS = (GitSwitchError, OSError, ValueError)


def _provider(hostname: Optional[str]) -> Optional[GitProvider]:
    name = infer_provider(hostname)
    return GitProvider(name) if name else None


def _same_path(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return expand_tilde(left).expanduser() == expand_tilde(right).expanduser()


class DiscoveryEngine(IdentityDiscovery):
    """Scans SSH keys, SSH config, the global git config and repository trees."""

    def __init__(
        self,
        *,
        ssh: SSHManager,
        git: GitConfigBackend,
        label_rules: Optional[Sequence[LabelRule]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.ssh = ssh
        self.git = git
        self.label_rules = label_rules
        self.cancel_event = cancel_event or threading.Event()

    def discover(self, options: Optional[DiscoveryOptions] = None) -> DiscoveryResult:
        options = options or DiscoveryOptions()
        started = time.monotonic()
        result = DiscoveryResult()
        logger.info("Starting discovery", extra={"options": options.model_dump()})

        if options.scan_ssh_keys:
            try:
                result.ssh_keys = self.ssh.list_keys()
            except PHASE_ERRORS as exc:
                self._record(result, "SSH key scan failed", exc)

        if options.scan_ssh_config:
            try:
                result.ssh_config_entries = self.ssh.get_ssh_config()
            except PHASE_ERRORS as exc:
                self._record(result, "SSH config scan failed", exc)

        if options.scan_git_config:
            try:
                result.global_git_config = self.git.get_global_config()
            except PHASE_ERRORS as exc:
                self._record(result, "Git config scan failed", exc)

        if options.scan_repositories:
            roots = self._scan_roots(options)
            walker = RepositoryWalker(
                max_depth=options.max_depth,
                exclude_patterns=options.exclude_patterns,
                directory_timeout=options.directory_timeout,
                cancel_event=self.cancel_event,
            )
            walk = walker.walk(roots)
            result.repositories = walk.repositories
            result.errors.extend(walk.errors)
            if walk.cancelled:
                result.errors.append("Repository scan cancelled")

        result.identities = self.build_identity_suggestions(result)
        result.duration_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            "Discovery complete",
            extra={
                "identities": len(result.identities),
                "ssh_keys": len(result.ssh_keys),
                "repositories": len(result.repositories),
                "errors": len(result.errors),
                "duration_ms": result.duration_ms,
            },
        )
        return result

    def build_identity_suggestions(self, result: DiscoveryResult) -> List[DiscoveredIdentity]:
        identities: List[DiscoveredIdentity] = []
        seen: set[str] = set()

        for key in result.ssh_keys:
            natural_key = key.comment or key.fingerprint or key.private_path
            if natural_key in seen:
                continue
            seen.add(natural_key)
            email = key.comment if key.comment and "@" in key.comment else None
            if email:
                seen.add(email.lower())
            config_entry = self._entry_for_key(key, result.ssh_config_entries)
            identity = DiscoveredIdentity(
                source=IdentitySource.SSH_KEY,
                email=email,
                ssh_key=key,
                ssh_config=config_entry,
                provider=_provider(config_entry.host_name or config_entry.host) if config_entry else None,
            )
            identity.suggested_label = suggest_label(identity, self.label_rules)
            identities.append(identity)

        global_config = result.global_git_config
        if global_config and global_config.email and global_config.email.lower() not in seen:
            seen.add(global_config.email.lower())
            identity = DiscoveredIdentity(
                source=IdentitySource.GIT_CONFIG,
                email=global_config.email,
                username=global_config.username,
            )
            identity.suggested_label = suggest_label(identity, self.label_rules)
            identities.append(identity)

        for entry in result.ssh_config_entries:
            if entry.identity_file or entry.host in seen:
                continue
            seen.add(entry.host)
            provider = _provider(entry.host_name or entry.host)
            if provider is None:
                continue
            identities.append(
                DiscoveredIdentity(
                    source=IdentitySource.SSH_CONFIG,
                    ssh_config=entry,
                    provider=provider,
                    suggested_label=entry.host,
                )
            )

        return identities

    def has_existing_identities(self) -> bool:
        if self.ssh.list_keys():
            return True
        return bool(self.git.get_global_config().email)

    def get_default_scan_directories(self) -> List[str]:
        return [str(path) for path in get_default_scan_dirs()]

    def _scan_roots(self, options: DiscoveryOptions) -> List[Path]:
        base = options.directories if options.directories is not None else self.get_default_scan_directories()
        roots: List[Path] = []
        for raw in [*base, *options.additional_repo_dirs]:
            path = expand_tilde(raw)
            if path not in roots:
                roots.append(path)
        return roots

    @staticmethod
    def _entry_for_key(key: SSHKeyInfo, entries: Sequence[SSHConfigEntry]) -> Optional[SSHConfigEntry]:
        for entry in entries:
            if _same_path(entry.identity_file, key.private_path):
                return entry
        return None

    @staticmethod
    def _record(result: DiscoveryResult, prefix: str, exc: Exception) -> None:
        message = f"{prefix}: {exc}"
        result.errors.append(message)
        logger.error(prefix, extra={"error": str(exc), "error_code": "SCAN_PARTIAL_FAILURE"})
