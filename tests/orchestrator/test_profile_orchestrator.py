"""Tests for profile lifecycle, global switching and discovery import."""

import hashlib
import subprocess
from pathlib import Path

import pytest

from gitswitch.errors import ProfileNotFoundError, ValidationError
from gitswitch.git.runner import CommandRunner
from gitswitch.models import (
    AuthType,
    DiscoveredIdentity,
    DiscoveryOptions,
    GitProvider,
    IdentitySource,
    SSHConfigEntry,
    SSHKeyInfo,
)


class KeygenStub(CommandRunner):
    """Writes a key pair where ssh-keygen would."""

    def __init__(self):
        super().__init__("ssh-keygen")

    def run(self, *args, cwd=None, check=False, env=None):
        target = Path(args[args.index("-f") + 1])
        target.write_text("private\n")
        Path(f"{target}.pub").write_text(f"ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIPlaceholderKeyDataForTests {args[3]}\n")
        return subprocess.CompletedProcess(["ssh-keygen", *args], 0, "", "")

    def is_available(self):
        return False


@pytest.fixture
def profiles(services):
    return services.profiles


@pytest.fixture
def work_key(make_key_pair, isolated_home):
    return make_key_pair(isolated_home / ".ssh", "id_work", comment="me@corp.com")


def _https(label="Home", email="me@home.org", **extra):
    data = {"label": label, "provider": "github", "username": "me", "email": email, "auth_type": "https"}
    data.update(extra)
    return data


def _ssh(key_path, label="Work", email="me@corp.com", **extra):
    data = {
        "label": label,
        "provider": "github",
        "username": "jane",
        "email": email,
        "auth_type": "ssh",
        "ssh_key_path": str(key_path),
    }
    data.update(extra)
    return data


class TestCreate:
    def test_first_profile_becomes_default(self, profiles):
        first = profiles.create_profile(_https())
        second = profiles.create_profile(_https(label="Other", email="o@home.org"))
        assert first.is_default is True
        assert second.is_default is False
        assert first.color != second.color
        assert profiles.get_default().id == first.id

    def test_explicit_default_moves_flag(self, profiles):
        first = profiles.create_profile(_https())
        second = profiles.create_profile(_https(label="Other", email="o@home.org", is_default=True))
        assert profiles.get_default().id == second.id
        assert profiles.get_profile(first.id).is_default is False

    def test_ssh_profile_writes_host_alias(self, profiles, services, work_key):
        profile = profiles.create_profile(_ssh(work_key))

        assert profile.ssh_host_alias == "github-work"
        assert profile.ssh_key_path == str(work_key)
        entry = next(e for e in services.ssh.get_ssh_config() if e.host == "github-work")
        assert entry.host_name == "github.com"
        assert entry.user == "git"
        assert entry.identity_file == str(work_key)
        assert entry.identities_only is True

    def test_generated_key(self, profiles, services):
        services.ssh.runner = KeygenStub()
        profile = profiles.create_profile(_ssh("", generate_new_key=True, ssh_key_path=None))
        assert Path(profile.ssh_key_path).name == "id_ed25519_work"
        assert profile.ssh_host_alias == "github-work"

    def test_same_label_gets_a_distinct_alias(self, profiles, services, work_key, make_key_pair, isolated_home):
        other_key = make_key_pair(isolated_home / ".ssh", "id_work_two", comment="two@corp.com")
        first = profiles.create_profile(_ssh(work_key))
        second = profiles.create_profile(_ssh(other_key, email="two@corp.com"))

        assert (first.ssh_host_alias, second.ssh_host_alias) == ("github-work", "github-work-2")
        entries = {e.host: e.identity_file for e in services.ssh.get_ssh_config()}
        assert entries == {"github-work": str(work_key), "github-work-2": str(other_key)}

        profiles.delete_profile(second.id)
        assert [e.host for e in services.ssh.get_ssh_config()] == ["github-work"]

    def test_alias_avoids_foreign_ssh_config_stanza(self, profiles, services, work_key):
        services.ssh.config_path.parent.mkdir(parents=True, exist_ok=True)
        services.ssh.config_path.write_text("Host github-work\n  HostName github.com\n  User me\n")
        profile = profiles.create_profile(_ssh(work_key))
        assert profile.ssh_host_alias == "github-work-2"
        assert "  User me\n" in services.ssh.config_path.read_text()

    def test_missing_key_file_is_rejected(self, profiles, isolated_home):
        with pytest.raises(ValidationError):
            profiles.create_profile(_ssh(isolated_home / ".ssh" / "nope"))
        assert profiles.list_profiles() == []

    def test_custom_provider_alias_has_no_hostname(self, profiles, services, work_key):
        profiles.create_profile(_ssh(work_key, provider="custom", label="Forge"))
        entry = next(e for e in services.ssh.get_ssh_config() if e.host == "custom-forge")
        assert entry.host_name is None

    def test_https_token_goes_to_keyring(self, profiles, services):
        profile = profiles.create_profile(_https(token="ghp_secret"))
        assert profile.token_id == profile.id
        assert services.store.get_token(profile.id) == "ghp_secret"
        assert "ghp_secret" not in services.store.path.read_text()

    def test_invalid_input_is_validation_error(self, profiles):
        with pytest.raises(ValidationError):
            profiles.create_profile(_https(email="not-an-email"))

    def test_creation_is_audited(self, profiles, services):
        profile = profiles.create_profile(_https())
        entry = services.audit.get_logs(category="profile")[0]
        assert entry.action == "created"
        assert entry.details["profile_id"] == profile.id


class TestUpdate:
    def test_partial_update(self, profiles, services):
        profile = profiles.create_profile(_https())
        updated = profiles.update_profile({"id": profile.id, "label": "Personal"})
        assert updated.label == "Personal"
        assert updated.email == profile.email
        assert updated.updated_at >= profile.updated_at
        assert services.audit.get_logs(category="profile")[0].details["changes"] == ["label"]

    def test_unknown_profile(self, profiles):
        with pytest.raises(ProfileNotFoundError):
            profiles.update_profile({"id": "missing", "label": "x"})

    def test_switch_to_https_removes_alias(self, profiles, services, work_key):
        profile = profiles.create_profile(_ssh(work_key))
        updated = profiles.update_profile({"id": profile.id, "auth_type": "https"})
        assert updated.auth_type == AuthType.HTTPS
        assert updated.ssh_host_alias is None
        assert updated.ssh_key_path is None
        assert [e.host for e in services.ssh.get_ssh_config()] == []

    def test_switch_to_ssh_adds_alias(self, profiles, services, work_key):
        profile = profiles.create_profile(_https(label="Work"))
        updated = profiles.update_profile({"id": profile.id, "auth_type": "ssh", "ssh_key_path": str(work_key)})
        assert updated.ssh_host_alias == "github-work"
        assert [e.host for e in services.ssh.get_ssh_config()] == ["github-work"]

    def test_unsetting_default_elects_oldest_other(self, profiles):
        first = profiles.create_profile(_https())
        second = profiles.create_profile(_https(label="B", email="b@home.org"))
        profiles.create_profile(_https(label="C", email="c@home.org"))

        updated = profiles.update_profile({"id": first.id, "is_default": False})

        assert updated.is_default is False
        assert profiles.get_default().id == second.id

    def test_unsetting_sole_default_is_ignored(self, profiles):
        only = profiles.create_profile(_https())
        assert profiles.update_profile({"id": only.id, "is_default": False}).is_default is True

    def test_token_update(self, profiles, services):
        profile = profiles.create_profile(_https())
        updated = profiles.update_profile({"id": profile.id, "token": "glpat-new"})
        assert updated.token_id == profile.id
        assert services.store.get_token(profile.id) == "glpat-new"

    def test_default_moved_while_updating_is_kept(self, profiles, services, monkeypatch):
        first = profiles.create_profile(_https(label="A", email="a@home.org"))
        second = profiles.create_profile(_https(label="B", email="b@home.org"))
        store = services.store
        read_profile = store.get_profile
        moved = []

        def read_then_move_default(profile_id):
            profile = read_profile(profile_id)
            if not moved:
                moved.append(profile_id)
                store.set_default_profile(second.id)
            return profile

        monkeypatch.setattr(store, "get_profile", read_then_move_default)

        updated = profiles.update_profile({"id": second.id, "label": "B2"})

        assert (updated.label, updated.is_default) == ("B2", True)
        assert [p.id for p in store.get_profiles() if p.is_default] == [second.id]
        assert read_profile(first.id).is_default is False


class TestDelete:
    def test_delete_cleans_alias_and_token(self, profiles, services, work_key):
        ssh_profile = profiles.create_profile(_ssh(work_key))
        https_profile = profiles.create_profile(_https(token="ghp_secret"))

        profiles.delete_profile(ssh_profile.id)
        profiles.delete_profile(https_profile.id)

        assert profiles.list_profiles() == []
        assert services.ssh.get_ssh_config() == []
        assert services.store.get_token(https_profile.id) is None

    def test_delete_default_elects_successor(self, profiles):
        first = profiles.create_profile(_https())
        second = profiles.create_profile(_https(label="B", email="b@home.org"))
        profiles.delete_profile(first.id)
        assert profiles.get_profile(second.id).is_default is True

    def test_delete_missing(self, profiles):
        with pytest.raises(ProfileNotFoundError):
            profiles.delete_profile("missing")


class TestSwitchGlobal:
    def test_switch_writes_identity_and_default(self, profiles, services, isolated_home):
        home = profiles.create_profile(_https())
        work = profiles.create_profile(_https(label="Work", email="me@corp.com"))
        gitconfig = isolated_home / ".gitconfig"
        gitconfig.write_text("[core]\n\tautocrlf = input\n")
        before = gitconfig.read_bytes()

        result = profiles.switch_global(work.id)

        assert result["success"] is True
        assert result["message"] == "Switched to Work (me@corp.com)"
        backup = services.backups.get_backup(result["backup_id"])
        assert backup.original_path == str(gitconfig)
        assert backup.original_hash == hashlib.sha256(before).hexdigest()
        current = profiles.get_current_global()
        assert (current.email, current.username) == ("me@corp.com", "me")
        assert "autocrlf = input" in gitconfig.read_text()
        assert profiles.get_default().id == work.id
        assert profiles.get_profile(home.id).is_default is False
        entry = services.audit.get_logs(category="profile")[0]
        assert (entry.action, entry.backup_id) == ("global_switch", result["backup_id"])
        assert services.audit.verify_entry(entry)

    def test_switch_unknown(self, profiles):
        with pytest.raises(ProfileNotFoundError):
            profiles.switch_global("missing")

    def test_public_key(self, profiles, work_key):
        profile = profiles.create_profile(_ssh(work_key))
        assert profiles.get_profile_public_key(profile.id).endswith("me@corp.com")
        assert profiles.get_profile_public_key(profiles.create_profile(_https()).id) is None


class TestDiscoveryImport:
    def test_discover_records_time_and_audit(self, profiles, services):
        profiles.discover(DiscoveryOptions(scan_repositories=False))
        assert services.store.get_settings().last_discovery_time is not None
        assert services.audit.get_logs(category="discovery")[0].action == "completed"

    def test_only_selected_identities_are_imported(self, profiles):
        identities = [
            DiscoveredIdentity(
                source=IdentitySource.GIT_CONFIG,
                email="me@corp.com",
                username="Me",
                suggested_label="Corp",
                selected=True,
            ),
            DiscoveredIdentity(source=IdentitySource.GIT_CONFIG, email="other@corp.com"),
        ]
        imported = profiles.import_from_discovery(identities)
        assert [(p.label, p.username, p.auth_type) for p in imported] == [("Corp", "Me", AuthType.HTTPS)]

    def test_invalid_identity_is_skipped(self, profiles):
        identities = [
            {"source": "ssh_config", "selected": True},
            {"source": "git_config", "email": "me@gmail.com", "selected": True},
        ]
        imported = profiles.import_from_discovery(identities)
        assert [(p.email, p.username, p.label) for p in imported] == [("me@gmail.com", "me", "Imported")]

    def test_existing_alias_is_reused(self, profiles, services, work_key):
        config = SSHConfigEntry(host="github-corp", host_name="github.com", identity_file="~/.ssh/id_work")
        services.ssh.config_path.write_text("Host github-corp\n  HostName github.com\n  IdentityFile ~/.ssh/id_work\n")
        identity = DiscoveredIdentity(
            source=IdentitySource.SSH_KEY,
            email="me@corp.com",
            ssh_key=SSHKeyInfo(private_path=str(work_key), public_path=f"{work_key}.pub", comment="me@corp.com"),
            ssh_config=config,
            provider=GitProvider.GITHUB,
            suggested_label="Corp",
            selected=True,
        )

        imported = profiles.import_from_discovery([identity])

        assert imported[0].ssh_host_alias == "github-corp"
        assert [e.host for e in services.ssh.get_ssh_config()] == ["github-corp"]
        assert services.backups.list_backups() == []


def _default_labels(store):
    return [p.label for p in store.get_profiles() if p.is_default]


def test_exactly_one_default_through_mixed_operations(profiles, services):
    store = services.store
    a = profiles.create_profile(_https(label="A", email="a@home.org"))
    assert _default_labels(store) == ["A"]
    b = profiles.create_profile(_https(label="B", email="b@home.org"))
    assert _default_labels(store) == ["A"]
    c = profiles.create_profile(_https(label="C", email="c@home.org", is_default=True))
    assert _default_labels(store) == ["C"]

    profiles.update_profile({"id": c.id, "is_default": False})
    assert _default_labels(store) == ["A"]
    profiles.set_default(b.id)
    assert _default_labels(store) == ["B"]
    profiles.update_profile({"id": a.id, "label": "A2"})
    assert _default_labels(store) == ["B"]
    profiles.update_profile({"id": c.id, "is_default": True})
    assert _default_labels(store) == ["C"]
    profiles.delete_profile(c.id)
    assert _default_labels(store) == ["A2"]
    profiles.delete_profile(a.id)
    assert _default_labels(store) == ["B"]
    profiles.update_profile({"id": b.id, "is_default": False})
    assert _default_labels(store) == ["B"]
    profiles.delete_profile(b.id)
    assert store.get_profiles() == []


def test_work_profile_from_generated_key_to_global_switch(profiles, services, isolated_home):
    services.ssh.runner = KeygenStub()
    gitconfig = isolated_home / ".gitconfig"
    gitconfig.write_text("[user]\n\temail = old@home.org\n\tname = Old\n")
    before = gitconfig.read_bytes()

    work = profiles.create_profile(_ssh("", generate_new_key=True, ssh_key_path=None))

    key = Path(work.ssh_key_path)
    assert key.is_file()
    assert Path(f"{key}.pub").read_text().startswith("ssh-ed25519 ")
    assert work.ssh_host_alias == "github-work"
    alias = next(e for e in services.ssh.get_ssh_config() if e.host == "github-work")
    assert alias.identity_file == str(key)
    assert work.is_default is True

    result = profiles.switch_global(work.id)

    backup = services.backups.get_backup(result["backup_id"])
    assert backup.original_hash == hashlib.sha256(before).hexdigest()
    current = profiles.get_current_global()
    assert (current.email, current.username) == ("me@corp.com", "jane")
    entry = services.audit.get_logs(category="profile")[0]
    assert entry.action == "global_switch"
    assert entry.backup_id == backup.id
    assert services.audit.verify_entry(entry)
