"""Tests for identity and repository discovery."""

import threading

import pytest

from gitswitch.discovery import DiscoveryEngine
from gitswitch.errors import IOFailureError
from gitswitch.git import GitConfigMutator
from gitswitch.models import DiscoveryOptions, GitProvider, IdentitySource
from gitswitch.ssh import SSHKeyManager

NO_REPOS = DiscoveryOptions(scan_repositories=False)


class BrokenSSH:
    """SSH manager whose every read fails."""

    def list_keys(self):
        raise IOFailureError("ssh directory unreadable")

    def get_ssh_config(self):
        raise PermissionError(13, "Permission denied")


@pytest.fixture
def ssh_dir(isolated_home):
    return isolated_home / ".ssh"


@pytest.fixture
def ssh(ssh_dir, backups, audit_log, missing_runner):
    return SSHKeyManager(ssh_dir, backups=backups, audit=audit_log, runner=missing_runner)


@pytest.fixture
def git(backups, audit_log, isolated_home, missing_runner):
    return GitConfigMutator(
        backups=backups, audit=audit_log, global_config_path=isolated_home / ".gitconfig", runner=missing_runner
    )


@pytest.fixture
def engine(ssh, git):
    return DiscoveryEngine(ssh=ssh, git=git)


class TestIdentities:
    def test_empty_machine(self, engine):
        result = engine.discover(NO_REPOS)
        assert result.identities == []
        assert result.errors == []
        assert engine.has_existing_identities() is False

    def test_key_with_config_alias(self, engine, ssh_dir, make_key_pair):
        make_key_pair(ssh_dir, "id_work", comment="jane@acme.io")
        (ssh_dir / "config").write_text(
            "Host github-work\n  HostName github.com\n  User git\n  IdentityFile ~/.ssh/id_work\n"
        )

        identities = engine.discover(NO_REPOS).identities

        assert len(identities) == 1
        identity = identities[0]
        assert identity.source == IdentitySource.SSH_KEY
        assert identity.email == "jane@acme.io"
        assert identity.ssh_config.host == "github-work"
        assert identity.provider == GitProvider.GITHUB
        assert identity.suggested_label == "Acme"

    def test_global_config_email_deduplicated_against_key(self, engine, ssh_dir, make_key_pair, isolated_home):
        make_key_pair(ssh_dir, "id_work", comment="Jane@acme.io")
        (isolated_home / ".gitconfig").write_text("[user]\n\temail = jane@acme.io\n\tname = Jane\n")

        identities = engine.discover(NO_REPOS).identities

        assert [i.source for i in identities] == [IdentitySource.SSH_KEY]

    def test_global_config_identity(self, engine, isolated_home):
        (isolated_home / ".gitconfig").write_text("[user]\n\temail = me@gmail.com\n\tname = Me\n")

        identities = engine.discover(NO_REPOS).identities

        assert len(identities) == 1
        assert identities[0].source == IdentitySource.GIT_CONFIG
        assert identities[0].username == "Me"
        assert identities[0].suggested_label == "Personal"
        assert engine.has_existing_identities() is True

    def test_config_entry_without_key_for_known_provider(self, engine, ssh_dir):
        ssh_dir.mkdir()
        (ssh_dir / "config").write_text("Host gitlab.com\n  User git\n\nHost bastion\n  HostName 10.0.0.1\n")

        identities = engine.discover(NO_REPOS).identities

        assert [(i.source, i.provider, i.suggested_label) for i in identities] == [
            (IdentitySource.SSH_CONFIG, GitProvider.GITLAB, "gitlab.com")
        ]

    def test_duplicate_key_comments_collapse(self, engine, ssh_dir, make_key_pair):
        make_key_pair(ssh_dir, "id_a", comment="me@corp.com")
        make_key_pair(ssh_dir, "id_b", comment="me@corp.com")
        assert len(engine.discover(NO_REPOS).identities) == 1

    def test_custom_label_rules(self, ssh, git, isolated_home):
        (isolated_home / ".gitconfig").write_text("[user]\n\temail = me@corp.com\n")
        engine = DiscoveryEngine(ssh=ssh, git=git, label_rules=[lambda identity: "Day Job"])
        assert engine.discover(NO_REPOS).identities[0].suggested_label == "Day Job"


class TestPhases:
    def test_failing_phases_are_recorded(self, git, isolated_home):
        (isolated_home / ".gitconfig").write_text("[user]\n\temail = me@corp.com\n")
        engine = DiscoveryEngine(ssh=BrokenSSH(), git=git)

        result = engine.discover(NO_REPOS)

        assert result.partial_failure
        assert len(result.errors) == 2
        assert result.errors[0].startswith("SSH key scan failed")
        assert result.errors[1].startswith("SSH config scan failed")
        assert [i.email for i in result.identities] == ["me@corp.com"]

    def test_disabled_phases_are_skipped(self):
        engine = DiscoveryEngine(ssh=BrokenSSH(), git=None)
        options = DiscoveryOptions(
            scan_ssh_keys=False, scan_ssh_config=False, scan_git_config=False, scan_repositories=False
        )
        result = engine.discover(options)
        assert result.errors == []

    def test_repository_phase(self, engine, make_repo, tmp_path):
        repo = make_repo("projects/widgets")
        options = DiscoveryOptions(directories=[str(tmp_path / "projects")], scan_ssh_keys=False)

        result = engine.discover(options)

        assert result.repositories == [str(repo.resolve())]

    def test_additional_dirs_extend_explicit_roots(self, engine, make_repo, tmp_path):
        first = make_repo("one/a")
        second = make_repo("two/b")
        options = DiscoveryOptions(
            directories=[str(tmp_path / "one")], additional_repo_dirs=[str(tmp_path / "two")]
        )
        assert engine.discover(options).repositories == [str(first.resolve()), str(second.resolve())]

    def test_cancelled_scan(self, ssh, git, make_repo, tmp_path):
        make_repo("projects/widgets")
        event = threading.Event()
        event.set()
        engine = DiscoveryEngine(ssh=ssh, git=git, cancel_event=event)

        result = engine.discover(DiscoveryOptions(directories=[str(tmp_path / "projects")]))

        assert result.repositories == []
        assert "Repository scan cancelled" in result.errors
