"""Models produced by SSH inspection and identity discovery."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from gitswitch.models.profile import GitProvider


class SSHKeyInfo(BaseModel):
    """Metadata about a key pair. Never carries private key bytes."""

    private_path: str
    public_path: str
    fingerprint: Optional[str] = None
    comment: Optional[str] = None
    key_type: Optional[str] = None
    bits: Optional[int] = None
    has_passphrase: Optional[bool] = None


class SSHConfigEntry(BaseModel):
    """One ``Host`` stanza of ``~/.ssh/config``."""

    host: str
    host_name: Optional[str] = None
    user: Optional[str] = None
    identity_file: Optional[str] = None
    identities_only: Optional[bool] = None
    port: Optional[int] = None
    extra: Dict[str, str] = Field(default_factory=dict)


class IdentitySource(str, Enum):
    SSH_KEY = "ssh_key"
    GIT_CONFIG = "git_config"
    SSH_CONFIG = "ssh_config"
    CREDENTIAL_HELPER = "credential_helper"


class GlobalGitIdentity(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None


class DiscoveredIdentity(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: IdentitySource
    email: Optional[str] = None
    username: Optional[str] = None
    ssh_key: Optional[SSHKeyInfo] = None
    ssh_config: Optional[SSHConfigEntry] = None
    provider: Optional[GitProvider] = None
    suggested_label: Optional[str] = None
    selected: bool = False


class DiscoveryResult(BaseModel):
    identities: List[DiscoveredIdentity] = Field(default_factory=list)
    ssh_keys: List[SSHKeyInfo] = Field(default_factory=list)
    ssh_config_entries: List[SSHConfigEntry] = Field(default_factory=list)
    global_git_config: Optional[GlobalGitIdentity] = None
    repositories: List[str] = Field(default_factory=list)
    duration_ms: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return bool(self.errors)


class DiscoveryOptions(BaseModel):
    scan_ssh_keys: bool = True
    scan_ssh_config: bool = True
    scan_git_config: bool = True
    scan_repositories: bool = True
    additional_repo_dirs: List[str] = Field(default_factory=list)
    directories: Optional[List[str]] = Field(
        default=None, description="Replaces the platform default scan directories"
    )
    max_depth: int = Field(default=4, ge=0, le=32)
    exclude_patterns: List[str] = Field(default_factory=list)
    directory_timeout: float = Field(default=5.0, gt=0, description="Seconds per directory listing")
