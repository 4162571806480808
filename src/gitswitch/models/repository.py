"""Repository models derived from on-disk Git state."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class RemoteType(str, Enum):
    SSH = "ssh"
    HTTPS = "https"


class RepositoryStatus(str, Enum):
    BOUND = "bound"
    UNBOUND = "unbound"
    MISMATCH = "mismatch"
    ERROR = "error"


class Remote(BaseModel):
    """A configured remote. Derived on every read, never persisted on its own."""

    name: str
    url: str
    type: RemoteType = RemoteType.HTTPS
    provider: Optional[str] = None
    owner: Optional[str] = None
    repo: Optional[str] = None
    host: Optional[str] = None


class Repository(BaseModel):
    """A working copy and its identity state. ``path`` is the unique key."""

    path: str
    name: str
    remotes: List[Remote] = Field(default_factory=list)
    bound_profile_id: Optional[str] = None
    local_email: Optional[str] = None
    local_username: Optional[str] = None
    detected_provider: Optional[str] = None
    has_mismatch: bool = False
    mismatch_details: Optional[str] = None
    status: RepositoryStatus = RepositoryStatus.UNBOUND
    last_accessed: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AccessOutcome(str, Enum):
    SUCCESS = "success"
    PERMISSION_DENIED = "permission_denied"
    HOST_UNREACHABLE = "host_unreachable"
    FAILED = "failed"


class AccessCheck(BaseModel):
    """Result of a dry-run fetch against the repository's remote."""

    success: bool
    outcome: AccessOutcome
    message: str


class ScanOptions(BaseModel):
    directories: Optional[List[str]] = None
    max_depth: Optional[int] = Field(default=None, ge=0, le=32)
    exclude_patterns: Optional[List[str]] = None


class ScanResult(BaseModel):
    repositories: List[Repository] = Field(default_factory=list)
    duration_ms: int = 0
    errors: List[str] = Field(default_factory=list)
