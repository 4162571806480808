"""Wires the components together from a :class:`GitSwitchConfig`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from gitswitch.backup import BackupEngine
from gitswitch.configuration import GitSwitchConfig, SecretStore, ensure_runtime_dirs, load_config
from gitswitch.discovery import DiscoveryEngine
from gitswitch.git import CommandRunner, GitConfigMutator
from gitswitch.orchestrator.profiles import ProfileOrchestrator
from gitswitch.orchestrator.repositories import RepositoryOrchestrator
from gitswitch.privacy import AuditLog, EncryptionManager
from gitswitch.ssh import SSHKeyManager
from gitswitch.storage import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class GitSwitchServices:
    """Every component of one running instance."""

    config: GitSwitchConfig
    store: RecordStore
    audit: AuditLog
    backups: BackupEngine
    git: GitConfigMutator
    ssh: SSHKeyManager
    discovery: DiscoveryEngine
    profiles: ProfileOrchestrator
    repositories: RepositoryOrchestrator


def build_services(
    config: Optional[GitSwitchConfig] = None,
    *,
    keyring_module: Any = None,
) -> GitSwitchServices:
    """Create the component graph.

    ``keyring_module`` replaces the system keyring, mainly for tests.
    """

    config = config or load_config()
    ensure_runtime_dirs(config)

    token_store = SecretStore(config.keyring_service)
    key_store = SecretStore(config.store_key_service)
    if keyring_module is not None:
        token_store.keyring_module = keyring_module
        key_store.keyring_module = keyring_module

    encryption = EncryptionManager(secret_store=key_store, enabled=config.encrypt_store)
    store = RecordStore(config.store_path, secret_store=token_store, encryption=encryption)
    audit = AuditLog(config.audit_dir)
    backups = BackupEngine(config.backup_dir, audit=audit)
    git = GitConfigMutator(
        backups=backups,
        audit=audit,
        global_config_path=config.global_git_config_path,
        runner=CommandRunner(config.git_binary, timeout=config.command_timeout),
    )
    ssh = SSHKeyManager(
        config.ssh_dir,
        backups=backups,
        audit=audit,
        runner=CommandRunner(config.ssh_keygen_binary, timeout=config.command_timeout),
    )
    discovery = DiscoveryEngine(ssh=ssh, git=git)
    profiles = ProfileOrchestrator(store=store, ssh=ssh, git=git, audit=audit, discovery=discovery)
    repositories = RepositoryOrchestrator(
        store=store, git=git, audit=audit, discovery=discovery, profiles=profiles
    )

    logger.debug("Services ready", extra={"app_data_dir": str(config.app_data_dir)})
    return GitSwitchServices(
        config=config,
        store=store,
        audit=audit,
        backups=backups,
        git=git,
        ssh=ssh,
        discovery=discovery,
        profiles=profiles,
        repositories=repositories,
    )
