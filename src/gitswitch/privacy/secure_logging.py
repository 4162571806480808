"""Credential redaction for log output.

Tokens and key material must never reach a log sink. The filter here
rewrites records before any handler formats them.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Credential Patterns
# ---------------------------------------------------------------------------

TOKEN_PATTERNS = [
    r"ghp_[a-zA-Z0-9]{36,}",  # GitHub personal access token
    r"gho_[a-zA-Z0-9]{36,}",  # GitHub OAuth token
    r"ghu_[a-zA-Z0-9]{36,}",
    r"ghs_[a-zA-Z0-9]{36,}",
    r"github_pat_[a-zA-Z0-9_]{22,}",  # GitHub fine-grained PAT
    r"glpat-[a-zA-Z0-9\-_]{20,}",  # GitLab personal access token
]

PRIVATE_KEY_PATTERN = (
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----"
)

CREDENTIAL_PATTERNS = [
    r"bearer\s+[a-zA-Z0-9\-._~+/]+=*",
    r"token[\"']?\s*[:=]\s*[\"']?[^\s\"',]{8,}",
    r"password[\"']?\s*[:=]\s*[\"']?[^\s\"',]{4,}",
    r"secret[\"']?\s*[:=]\s*[\"']?[^\s\"',]{8,}",
]


# ---------------------------------------------------------------------------
# Credential Redaction Filter
# ---------------------------------------------------------------------------


class CredentialRedactionFilter(logging.Filter):
    """Logging filter that replaces credentials with a placeholder.

    Always lets the record through; only its message and arguments change.
    """

    def __init__(self, redaction_placeholder: str = "***REDACTED***"):
        super().__init__()
        self.redaction_placeholder = redaction_placeholder
        self.patterns = [
            re.compile(PRIVATE_KEY_PATTERN, re.DOTALL),
            *(re.compile(pattern, re.IGNORECASE) for pattern in TOKEN_PATTERNS + CREDENTIAL_PATTERNS),
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._redact_value(v) for v in record.args)

        return True

    def redact(self, text: str) -> str:
        for pattern in self.patterns:
            text = pattern.sub(self.redaction_placeholder, text)
        return text

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return {k: self._redact_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self._redact_value(v) for v in value)
        return value


# ---------------------------------------------------------------------------
# Secure Logging Setup
# ---------------------------------------------------------------------------


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str = logging.WARNING, *, verbose: bool = False) -> logging.Logger:
    """Install a redacting stderr handler on the ``gitswitch`` logger.

    Calling it again replaces the handler instead of stacking a second one.
    """

    logger = logging.getLogger("gitswitch")
    logger.setLevel(logging.DEBUG if verbose else level)

    for handler in list(logger.handlers):
        if getattr(handler, "_gitswitch_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CredentialRedactionFilter())
    handler._gitswitch_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def redact_text(text: Optional[str]) -> str:
    """Redact credentials from free text, e.g. git stderr before it is surfaced."""

    if not text:
        return ""
    return CredentialRedactionFilter().redact(text)
