"""Tests for profile model validation and naming helpers."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from gitswitch.models import AuthType, CreateProfileInput, GitProvider, Profile, UpdateProfileInput
from gitswitch.models.profile import PROFILE_COLORS, host_alias_for, profile_color, slugify_label


class TestNaming:
    @pytest.mark.parametrize(
        "label, expected",
        [("Work", "work"), ("My Work!", "mywork"), ("Côté 2", "ct2"), ("", "")],
    )
    def test_slugify_label(self, label, expected):
        assert slugify_label(label) == expected

    def test_host_alias(self):
        assert host_alias_for(GitProvider.GITHUB, "Work") == "github-work"
        assert host_alias_for("gitlab", "Side Project") == "gitlab-sideproject"

    def test_profile_color_wraps(self):
        assert profile_color(0) == PROFILE_COLORS[0]
        assert profile_color(len(PROFILE_COLORS)) == PROFILE_COLORS[0]


class TestProfile:
    def _base(self, **overrides):
        data = dict(
            label="Work",
            provider=GitProvider.GITHUB,
            username="me",
            email="me@corp.com",
            auth_type=AuthType.SSH,
            ssh_key_path="/home/me/.ssh/id_work",
            ssh_host_alias="github-work",
        )
        data.update(overrides)
        return data

    def test_valid_profile(self):
        profile = Profile(**self._base())
        assert profile.id
        assert profile.provider_config.ssh_hostname == "github.com"

    def test_ssh_fields_must_be_set_together(self):
        with pytest.raises(PydanticValidationError):
            Profile(**self._base(ssh_host_alias=None))

    @pytest.mark.parametrize("email", ["nope", "a@b@c", " "])
    def test_bad_email(self, email):
        with pytest.raises(PydanticValidationError):
            Profile(**self._base(email=email))

    def test_blank_label(self):
        with pytest.raises(PydanticValidationError):
            Profile(**self._base(label="   "))

    def test_bad_color(self):
        with pytest.raises(PydanticValidationError):
            Profile(**self._base(color="red"))


class TestInputs:
    def test_create_rejects_unknown_fields(self):
        with pytest.raises(PydanticValidationError):
            CreateProfileInput(
                label="Work", provider="github", username="me", email="me@corp.com", auth_type="https", extra=1
            )

    def test_token_hidden_from_repr(self):
        data = CreateProfileInput(
            label="Work", provider="github", username="me", email="me@corp.com", auth_type="https", token="ghp_x"
        )
        assert "ghp_x" not in repr(data)

    def test_changed_fields(self):
        update = UpdateProfileInput(id="p1", label="Office", token="t")
        assert update.changed_fields() == ["label", "token"]
