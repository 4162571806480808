"""Profile models: a named Git identity plus how it authenticates."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Enums and constants
# ---------------------------------------------------------------------------


class GitProvider(str, Enum):
    """Supported Git hosting providers."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    AZURE = "azure"
    CUSTOM = "custom"


class AuthType(str, Enum):
    SSH = "ssh"
    HTTPS = "https"


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    display_name: str
    hostname: str
    ssh_hostname: str


PROVIDER_CONFIGS: Dict[GitProvider, ProviderConfig] = {
    GitProvider.GITHUB: ProviderConfig("github", "GitHub", "github.com", "github.com"),
    GitProvider.GITLAB: ProviderConfig("gitlab", "GitLab", "gitlab.com", "gitlab.com"),
    GitProvider.BITBUCKET: ProviderConfig("bitbucket", "Bitbucket", "bitbucket.org", "bitbucket.org"),
    GitProvider.AZURE: ProviderConfig("azure", "Azure DevOps", "dev.azure.com", "ssh.dev.azure.com"),
    GitProvider.CUSTOM: ProviderConfig("custom", "Custom", "", ""),
}

PROFILE_COLORS = [
    "#238636",
    "#1f6feb",
    "#8957e5",
    "#f78166",
    "#d29922",
    "#3fb950",
    "#58a6ff",
    "#bc8cff",
    "#ff7b72",
    "#7ee787",
]

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+$")


def profile_color(index: int) -> str:
    """Palette color for the ``index``-th profile, wrapping around."""
    return PROFILE_COLORS[index % len(PROFILE_COLORS)]


def slugify_label(label: str) -> str:
    """Lower-case ``label`` and drop everything but ASCII letters and digits."""
    return re.sub(r"[^a-z0-9]", "", label.lower())


def host_alias_for(provider: GitProvider | str, label: str) -> str:
    """SSH ``Host`` alias for a profile, e.g. ``github-work``."""
    provider_name = provider.value if isinstance(provider, GitProvider) else str(provider)
    return f"{provider_name}-{slugify_label(label)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL.match(value):
        raise ValueError("email must look like name@host")
    return value


def _validate_color(value: Optional[str]) -> Optional[str]:
    if value is not None and not _HEX_COLOR.match(value):
        raise ValueError("color must be a #rrggbb hex string")
    return value


# ---------------------------------------------------------------------------
# Persisted profile
# ---------------------------------------------------------------------------


class Profile(BaseModel):
    """A Git identity.

    ``ssh_key_path`` and ``ssh_host_alias`` are set together or not at all.
    Secrets never live on this model; ``token_id`` names the keyring entry.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    label: str = Field(..., min_length=1)
    provider: GitProvider
    username: str = Field(..., min_length=1)
    email: str
    auth_type: AuthType
    ssh_key_path: Optional[str] = None
    ssh_host_alias: Optional[str] = None
    token_id: Optional[str] = None
    is_default: bool = False
    color: str = PROFILE_COLORS[0]
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("label", "username")
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    def _check_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("color")
    def _check_color(cls, value: str) -> str:
        return _validate_color(value)

    @model_validator(mode="after")
    def _ssh_fields_together(self) -> "Profile":
        if bool(self.ssh_key_path) != bool(self.ssh_host_alias):
            raise ValueError("ssh_key_path and ssh_host_alias must be set together")
        return self

    @property
    def provider_config(self) -> ProviderConfig:
        return PROVIDER_CONFIGS[self.provider]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class CreateProfileInput(BaseModel):
    """Data required to create a profile. ``token`` goes to the keyring only."""

    model_config = ConfigDict(extra="forbid")

    label: str = Field(..., min_length=1)
    provider: GitProvider
    username: str = Field(..., min_length=1)
    email: str
    auth_type: AuthType
    ssh_key_path: Optional[str] = None
    generate_new_key: bool = False
    token: Optional[str] = Field(default=None, repr=False)
    is_default: Optional[bool] = None
    color: Optional[str] = None

    @field_validator("email")
    def _check_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("color")
    def _check_color(cls, value: Optional[str]) -> Optional[str]:
        return _validate_color(value)


class UpdateProfileInput(BaseModel):
    """Partial update; ``None`` fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    id: str
    label: Optional[str] = None
    provider: Optional[GitProvider] = None
    username: Optional[str] = None
    email: Optional[str] = None
    auth_type: Optional[AuthType] = None
    ssh_key_path: Optional[str] = None
    token: Optional[str] = Field(default=None, repr=False)
    is_default: Optional[bool] = None
    color: Optional[str] = None

    @field_validator("email")
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        return _validate_email(value) if value is not None else None

    @field_validator("color")
    def _check_color(cls, value: Optional[str]) -> Optional[str]:
        return _validate_color(value)

    def changed_fields(self) -> list[str]:
        """Names of the fields this update touches, ``token`` included."""
        return sorted(
            name for name, value in self.model_dump(exclude={"id"}).items() if value is not None
        )
