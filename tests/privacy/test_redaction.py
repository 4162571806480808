"""Tests for key-based redaction of structured details."""

from gitswitch.privacy.redaction import REDACTED, RedactionPolicy, sanitize_details


def test_sensitive_keys_are_masked_case_insensitively():
    details = {"tokenId": "abc", "Password": "hunter2", "label": "Work"}
    assert sanitize_details(details) == {"tokenId": REDACTED, "Password": REDACTED, "label": "Work"}


def test_nested_mappings_and_lists_are_walked():
    details = {
        "profile": {"email": "me@example.com", "private_key_path": "/home/me/.ssh/id"},
        "items": [{"secret": "x"}, {"name": "ok"}],
    }
    result = sanitize_details(details)
    assert result["profile"] == {"email": "me@example.com", "private_key_path": REDACTED}
    assert result["items"] == [{"secret": REDACTED}, {"name": "ok"}]


def test_input_is_not_modified():
    details = {"token": "abc", "nested": {"password": "x"}}
    sanitize_details(details)
    assert details == {"token": "abc", "nested": {"password": "x"}}


def test_empty_details():
    assert sanitize_details(None) == {}
    assert sanitize_details({}) == {}


def test_custom_policy():
    policy = RedactionPolicy(keywords=("email",), placeholder="***")
    assert sanitize_details({"email": "a@b.c", "token": "t"}, policy=policy) == {"email": "***", "token": "t"}
