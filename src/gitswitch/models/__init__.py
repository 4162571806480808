"""Data models shared across GitSwitch components."""

from .discovery import (
    DiscoveredIdentity,
    DiscoveryOptions,
    DiscoveryResult,
    GlobalGitIdentity,
    IdentitySource,
    SSHConfigEntry,
    SSHKeyInfo,
)
from .profile import (
    PROVIDER_CONFIGS,
    AuthType,
    CreateProfileInput,
    GitProvider,
    Profile,
    UpdateProfileInput,
)
from .repository import (
    AccessCheck,
    AccessOutcome,
    Remote,
    RemoteType,
    Repository,
    RepositoryStatus,
    ScanOptions,
    ScanResult,
)

__all__ = [
    "AccessCheck",
    "AccessOutcome",
    "AuthType",
    "CreateProfileInput",
    "DiscoveredIdentity",
    "DiscoveryOptions",
    "DiscoveryResult",
    "GitProvider",
    "GlobalGitIdentity",
    "IdentitySource",
    "PROVIDER_CONFIGS",
    "Profile",
    "Remote",
    "RemoteType",
    "Repository",
    "RepositoryStatus",
    "SSHConfigEntry",
    "SSHKeyInfo",
    "ScanOptions",
    "ScanResult",
    "UpdateProfileInput",
]
