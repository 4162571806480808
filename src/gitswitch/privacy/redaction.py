"""Key-based redaction for audit details and other structured payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

REDACTED = "[REDACTED]"
SENSITIVE_KEYWORDS: tuple[str, ...] = ("password", "token", "secret", "private")


@dataclass(frozen=True)
class RedactionPolicy:
    """Masks values whose key mentions a sensitive keyword.

    Matching is a case-insensitive substring test on the key, so
    ``tokenId`` and ``private_key_path`` are both masked. Nested mappings and
    lists are walked; everything else keeps its structure.
    """

    keywords: tuple[str, ...] = SENSITIVE_KEYWORDS
    placeholder: str = REDACTED

    def is_sensitive(self, key: str) -> bool:
        lowered = key.lower()
        return any(keyword in lowered for keyword in self.keywords)

    def apply(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {
                key: self.placeholder if self.is_sensitive(str(key)) else self.apply(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [self.apply(item) for item in value]
        return value


_DEFAULT_POLICY = RedactionPolicy()


def sanitize_details(
    details: Optional[Mapping[str, Any]], *, policy: Optional[RedactionPolicy] = None
) -> dict[str, Any]:
    """Return a redacted copy of ``details``; the input is never modified."""

    if not details:
        return {}
    active_policy = policy or _DEFAULT_POLICY
    return active_policy.apply(details)
