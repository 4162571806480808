"""Coordinates the components into user-facing operations.

Only the component interfaces are exported here; every component module
imports them. The orchestrators live in :mod:`.profiles` and
:mod:`.repositories`.
"""

from .interfaces import (
    AuditSink,
    BackupProvider,
    GitConfigBackend,
    IdentityDiscovery,
    RecordStoreBackend,
    SSHManager,
)

__all__ = [
    "AuditSink",
    "BackupProvider",
    "GitConfigBackend",
    "IdentityDiscovery",
    "RecordStoreBackend",
    "SSHManager",
]
