"""Tests for suggested profile labels."""

import pytest

from gitswitch.discovery import suggest_label
from gitswitch.models import DiscoveredIdentity, IdentitySource, SSHKeyInfo


def _identity(email=None, username=None, comment=None):
    key = SSHKeyInfo(private_path="/k", public_path="/k.pub", comment=comment) if comment else None
    return DiscoveredIdentity(source=IdentitySource.GIT_CONFIG, email=email, username=username, ssh_key=key)


@pytest.mark.parametrize(
    "email, expected",
    [
        ("me@gmail.com", "Personal"),
        ("me@Proton.me", "Personal"),
        ("1234+me@users.noreply.github.com", "GitHub"),
        ("jane@acme.io", "Acme"),
        ("jane@corp.example.com", "Corp"),
    ],
)
def test_email_rules(email, expected):
    assert suggest_label(_identity(email=email)) == expected


def test_username_hints():
    assert suggest_label(_identity(username="jane-work")) == "Work"
    assert suggest_label(_identity(username="PersonalJane")) == "Personal"


def test_key_comment_fallback():
    assert suggest_label(_identity(comment="laptop@host")) == "laptop"


def test_unknown():
    assert suggest_label(_identity()) == "Unknown"
    assert suggest_label(_identity(username="jane")) == "Unknown"


def test_custom_rules_replace_defaults():
    rules = [lambda identity: "Client" if identity.email and identity.email.endswith("@client.com") else None]
    assert suggest_label(_identity(email="me@client.com"), rules) == "Client"
    assert suggest_label(_identity(email="me@gmail.com"), rules) == "Unknown"
