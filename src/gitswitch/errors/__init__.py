"""Centralized error definitions for GitSwitch.

Components raise these typed errors and fail fast. The boundary layer
(:mod:`gitswitch.api`) converts them into result envelopes so callers never
see raw stack traces.

Usage:
    from gitswitch.errors import GitSwitchError, ProfileNotFoundError

    try:
        orchestrator.switch_global(profile_id)
    except GitSwitchError as e:
        print(e.user_message)
"""

from __future__ import annotations

from gitswitch.errors.user_messages import (
    format_error_for_user,
    get_recovery_suggestion,
    get_user_message,
)


# =============================================================================
# Base Error
# =============================================================================


class GitSwitchError(Exception):
    """Base exception for all GitSwitch errors.

    Attributes:
        code: Error code for categorization
        user_message: User-friendly message (optional override)
        recoverable: Whether the error is potentially recoverable
        details: Additional error details for debugging
    """

    code: str = "GITSWITCH_ERROR"
    default_message: str = "An unexpected error occurred"
    recoverable: bool = True

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message or self.default_message
        self._user_message = user_message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Get user-friendly message."""
        if self._user_message:
            return self._user_message
        return get_user_message(self)

    @property
    def recovery_suggestion(self) -> str:
        """Get recovery suggestion."""
        return get_recovery_suggestion(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(GitSwitchError):
    """A profile, repository or backup id is unknown."""

    code = "NOT_FOUND"
    default_message = "Requested item not found"


class ProfileNotFoundError(NotFoundError):
    def __init__(self, profile_id: str) -> None:
        self.profile_id = profile_id
        super().__init__(
            f"Profile not found: {profile_id}",
            details={"profile_id": profile_id},
        )


class RepositoryNotFoundError(NotFoundError):
    def __init__(self, repo_path: str) -> None:
        self.repo_path = repo_path
        super().__init__(
            f"Not a git repository: {repo_path}",
            details={"repo_path": repo_path},
        )


class BackupNotFoundError(NotFoundError):
    def __init__(self, backup_id: str) -> None:
        self.backup_id = backup_id
        super().__init__(
            f"Backup not found: {backup_id}",
            details={"backup_id": backup_id},
        )


class PublicKeyNotFoundError(NotFoundError):
    def __init__(self, key_path: str) -> None:
        self.key_path = key_path
        super().__init__(
            f"No public key next to {key_path}",
            details={"key_path": key_path},
        )


# =============================================================================
# Input Errors
# =============================================================================


class ValidationError(GitSwitchError):
    """A required field is missing or a value is out of range."""

    code = "VALIDATION"
    default_message = "Invalid input"


# =============================================================================
# Storage Errors
# =============================================================================


class SecureStorageError(GitSwitchError):
    """The OS credential vault is unavailable or rejected a write.

    Never degrade to plaintext storage when this is raised.
    """

    code = "SECURE_STORAGE_FAILURE"
    default_message = "Secure storage unavailable"
    recoverable = False


class IOFailureError(GitSwitchError):
    """A required file is missing, unreadable or not writable."""

    code = "IO_FAILURE"
    default_message = "File operation failed"


class BackupFileMissingError(IOFailureError):
    """The registry references a backup body that no longer exists."""

    def __init__(self, backup_id: str, backup_path: str) -> None:
        self.backup_id = backup_id
        self.backup_path = backup_path
        super().__init__(
            f"Backup file missing for {backup_id}: {backup_path}",
            details={"backup_id": backup_id, "backup_path": backup_path},
        )


class ConfigWriteError(IOFailureError):
    """Writing a Git or SSH configuration file failed."""

    default_message = "Failed to write configuration"


class IntegrityMismatchError(GitSwitchError):
    """Stored hash does not match file content.

    Raised only for reporting; restores proceed after a warning.
    """

    code = "INTEGRITY_MISMATCH"
    default_message = "Integrity check failed"


# =============================================================================
# Remote Access Errors
# =============================================================================


class AccessDeniedError(GitSwitchError):
    code = "ACCESS_DENIED"
    default_message = "Permission denied by remote"


class HostUnreachableError(GitSwitchError):
    code = "HOST_UNREACHABLE"
    default_message = "Remote host unreachable"


# Discovery never raises for partial failures; the code tags the errors list.
SCAN_PARTIAL_FAILURE = "SCAN_PARTIAL_FAILURE"


# =============================================================================
# Error Handler
# =============================================================================


def handle_error(error: Exception) -> str:
    """Return a user-friendly message with recovery suggestion."""
    return format_error_for_user(error)


def is_recoverable(error: Exception) -> bool:
    if isinstance(error, GitSwitchError):
        return error.recoverable
    return False


__all__ = [
    "GitSwitchError",
    "NotFoundError",
    "ProfileNotFoundError",
    "RepositoryNotFoundError",
    "BackupNotFoundError",
    "PublicKeyNotFoundError",
    "ValidationError",
    "SecureStorageError",
    "IOFailureError",
    "BackupFileMissingError",
    "ConfigWriteError",
    "IntegrityMismatchError",
    "AccessDeniedError",
    "HostUnreachableError",
    "SCAN_PARTIAL_FAILURE",
    "handle_error",
    "is_recoverable",
]
