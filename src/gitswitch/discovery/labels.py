"""Suggested profile labels for discovered identities.

Labels come from an ordered list of rules. Each rule looks at an identity
and returns a label or None; the first answer wins. Callers can pass their
own list to :func:`suggest_label`.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from gitswitch.models import DiscoveredIdentity

LabelRule = Callable[[DiscoveredIdentity], Optional[str]]

PERSONAL_DOMAINS = frozenset(
    {
        "gmail.com",
        "hotmail.com",
        "outlook.com",
        "yahoo.com",
        "icloud.com",
        "protonmail.com",
        "proton.me",
    }
)
GITHUB_NOREPLY_DOMAIN = "users.noreply.github.com"
UNKNOWN_LABEL = "Unknown"


def _email_domain(identity: DiscoveredIdentity) -> Optional[str]:
    if not identity.email or "@" not in identity.email:
        return None
    domain = identity.email.rsplit("@", 1)[1].strip().lower()
    return domain or None


def personal_domain_rule(identity: DiscoveredIdentity) -> Optional[str]:
    return "Personal" if _email_domain(identity) in PERSONAL_DOMAINS else None


def github_noreply_rule(identity: DiscoveredIdentity) -> Optional[str]:
    return "GitHub" if _email_domain(identity) == GITHUB_NOREPLY_DOMAIN else None


def company_domain_rule(identity: DiscoveredIdentity) -> Optional[str]:
    domain = _email_domain(identity)
    if not domain:
        return None
    company = domain.split(".")[0]
    return company[:1].upper() + company[1:] if company else None


def username_hint_rule(identity: DiscoveredIdentity) -> Optional[str]:
    if not identity.username:
        return None
    lowered = identity.username.lower()
    if "personal" in lowered:
        return "Personal"
    if "work" in lowered:
        return "Work"
    return None


def key_comment_rule(identity: DiscoveredIdentity) -> Optional[str]:
    comment = identity.ssh_key.comment if identity.ssh_key else None
    if not comment:
        return None
    return comment.split("@")[0] or None


DEFAULT_LABEL_RULES: List[LabelRule] = [
    personal_domain_rule,
    github_noreply_rule,
    company_domain_rule,
    username_hint_rule,
    key_comment_rule,
]


def suggest_label(
    identity: DiscoveredIdentity, rules: Optional[Sequence[LabelRule]] = None
) -> str:
    for rule in rules if rules is not None else DEFAULT_LABEL_RULES:
        label = rule(identity)
        if label:
            return label
    return UNKNOWN_LABEL
