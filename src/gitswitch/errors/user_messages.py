"""User-friendly error messages for GitSwitch.

Error messages never include tokens, key material or file contents.
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Error Message Catalog
# =============================================================================

ERROR_MESSAGES: dict[str, str] = {
    "NOT_FOUND": "The requested item wasn't found.",
    "VALIDATION": "Some of the provided values are missing or invalid.",
    "SECURE_STORAGE_FAILURE": "The system keychain is unavailable. Nothing was stored.",
    "IO_FAILURE": "A configuration file couldn't be read or written.",
    "INTEGRITY_MISMATCH": "A backup no longer matches its recorded checksum.",
    "ACCESS_DENIED": "Permission denied. Check your SSH key or token.",
    "HOST_UNREACHABLE": "Could not connect. Check your network connection.",
    "SCAN_PARTIAL_FAILURE": "Some discovery steps failed; partial results are shown.",
    "GITSWITCH_ERROR": "An unexpected error occurred. Please try again.",
    "INTERNAL_ERROR": "Something went wrong. Please try again.",
    "UNKNOWN_ERROR": "Something went wrong. Please try again.",
}


# =============================================================================
# Recovery Suggestions
# =============================================================================

RECOVERY_SUGGESTIONS: dict[str, str] = {
    "NOT_FOUND": "List what exists with: gitswitch profiles list",
    "VALIDATION": "Check the command help with --help.",
    "SECURE_STORAGE_FAILURE": "Unlock or install a keyring backend, then retry.",
    "IO_FAILURE": "Check file permissions. Restore a backup with: gitswitch backup restore <id>",
    "INTEGRITY_MISMATCH": "Inspect the backup before relying on it: gitswitch backup list",
    "ACCESS_DENIED": "Make sure the key is added to your provider account.",
    "HOST_UNREACHABLE": "Retry once the network is available.",
    "SCAN_PARTIAL_FAILURE": "Re-run discovery after fixing the reported errors.",
    "GITSWITCH_ERROR": "If this persists, please report the issue.",
    "INTERNAL_ERROR": "If this persists, please report the issue.",
    "UNKNOWN_ERROR": "If this persists, please report the issue.",
}


# =============================================================================
# Helper Functions
# =============================================================================


def _error_code(error: Any) -> str:
    if hasattr(error, "code"):
        return error.code
    if isinstance(error, str):
        return error
    return type(error).__name__.upper()


def get_user_message(error: Any) -> str:
    """Get user-friendly message for an error or error code string."""
    return ERROR_MESSAGES.get(_error_code(error), ERROR_MESSAGES["UNKNOWN_ERROR"])


def get_recovery_suggestion(error: Any) -> str:
    """Get recovery suggestion for an error or error code string."""
    return RECOVERY_SUGGESTIONS.get(_error_code(error), RECOVERY_SUGGESTIONS["UNKNOWN_ERROR"])


def format_error_for_user(error: Any) -> str:
    """Format a complete user-friendly error message."""
    message = get_user_message(error)
    suggestion = get_recovery_suggestion(error)

    return f"{message}\n\nSuggestion: {suggestion}"
