"""Tests for repository scanning, binding and mismatch evaluation."""

import pytest

from gitswitch.errors import ProfileNotFoundError, RepositoryNotFoundError
from gitswitch.models import AccessOutcome, AuthType, GitProvider, Profile, Repository, RepositoryStatus, ScanOptions
from gitswitch.orchestrator.repositories import evaluate_binding


def _profile(**overrides):
    data = dict(
        id="p1",
        label="Work",
        provider=GitProvider.GITHUB,
        username="Jane",
        email="jane@corp.com",
        auth_type=AuthType.HTTPS,
    )
    data.update(overrides)
    return Profile(**data)


class TestEvaluateBinding:
    def test_unbound_never_mismatches(self):
        repo = Repository(path="/r", name="r", local_email="other@x.com", has_mismatch=True, mismatch_details="old")
        result = evaluate_binding(repo, [_profile()])
        assert result.status == RepositoryStatus.UNBOUND
        assert result.has_mismatch is False
        assert result.mismatch_details is None

    def test_bound_and_matching(self):
        repo = Repository(path="/r", name="r", bound_profile_id="p1", local_email="Jane@Corp.com", local_username="Jane")
        result = evaluate_binding(repo, [_profile()])
        assert result.status == RepositoryStatus.BOUND
        assert result.has_mismatch is False

    def test_email_mismatch(self):
        repo = Repository(path="/r", name="r", bound_profile_id="p1", local_email="me@home.org", local_username="Jane")
        result = evaluate_binding(repo, [_profile()])
        assert result.status == RepositoryStatus.MISMATCH
        assert result.has_mismatch is True
        assert result.mismatch_details == "email is me@home.org, expected jane@corp.com"

    def test_missing_local_identity(self):
        repo = Repository(path="/r", name="r", bound_profile_id="p1")
        result = evaluate_binding(repo, [_profile()])
        assert result.mismatch_details == (
            "email is not set, expected jane@corp.com; user.name is not set, expected Jane"
        )

    def test_deleted_profile_is_error(self):
        repo = Repository(path="/r", name="r", bound_profile_id="gone")
        result = evaluate_binding(repo, [_profile()])
        assert result.status == RepositoryStatus.ERROR
        assert result.mismatch_details == "Bound profile no longer exists"


@pytest.fixture
def repos(services):
    return services.repositories


@pytest.fixture
def work(services):
    return services.profiles.create_profile(
        {"label": "Work", "provider": "github", "username": "Jane", "email": "jane@corp.com", "auth_type": "https"}
    )


class TestScan:
    def test_scan_stores_repositories(self, repos, services, make_repo, tmp_path):
        one = make_repo("projects/one")
        make_repo("projects/nested/two", remote="https://gitlab.com/acme/two")

        result = repos.scan_repositories(ScanOptions(directories=[str(tmp_path / "projects")]))

        assert sorted(r.name for r in result.repositories) == ["one", "two"]
        assert result.errors == []
        stored = {r.path: r for r in services.store.get_repositories()}
        assert stored[str(one.resolve())].detected_provider == "github"
        assert all(r.status == RepositoryStatus.UNBOUND for r in result.repositories)

    def test_binding_stored_during_scan_survives(self, repos, services, make_repo, tmp_path, monkeypatch):
        make_repo("projects/one", email="jane@corp.com", name="Jane")
        make_repo("projects/two", email="jane@corp.com", name="Jane")
        profile = services.store.save_profile(_profile())
        read_repo = services.git.get_repo
        seen = []

        def read_then_bind_first(path):
            repository = read_repo(path)
            seen.append(repository)
            if len(seen) == 2:
                services.store.save_repository(seen[0].model_copy(update={"bound_profile_id": profile.id}))
            return repository

        monkeypatch.setattr(services.git, "get_repo", read_then_bind_first)

        result = repos.scan_repositories(ScanOptions(directories=[str(tmp_path / "projects")]))

        bound_path = seen[0].path
        stored = services.store.get_repository(bound_path)
        assert stored.bound_profile_id == profile.id
        assert stored.status == RepositoryStatus.BOUND
        assert {r.path: r.bound_profile_id for r in result.repositories}[bound_path] == profile.id

    def test_depth_option(self, repos, make_repo, tmp_path):
        make_repo("projects/a/b/c/deep")
        result = repos.scan_repositories(ScanOptions(directories=[str(tmp_path / "projects")], max_depth=2))
        assert result.repositories == []

    def test_settings_scan_dirs_are_used_by_default(self, repos, services, make_repo, tmp_path):
        make_repo("configured/one")
        services.store.update_settings({"default_scan_dirs": [str(tmp_path / "configured")]})
        result = repos.scan_repositories()
        assert [r.name for r in result.repositories] == ["one"]

    def test_rescan_keeps_binding(self, repos, work, make_repo, tmp_path):
        repo = make_repo("projects/one")
        repos.bind_repository(repo, work.id)

        result = repos.scan_repositories(ScanOptions(directories=[str(tmp_path / "projects")]))

        assert result.repositories[0].bound_profile_id == work.id
        assert result.repositories[0].status == RepositoryStatus.BOUND


class TestBinding:
    def test_bind_writes_local_identity(self, repos, services, work, make_repo):
        repo = make_repo("widgets", email="old@home.org")

        result = repos.bind_repository(repo, work.id)

        assert result["bound"] is True
        assert result["profile"] == "Work"
        bound = result["repository"]
        assert bound.local_email == "jane@corp.com"
        assert bound.status == RepositoryStatus.BOUND
        assert services.store.get_repository(str(repo.resolve())).bound_profile_id == work.id
        assert services.backups.list_backups()[0].original_path == str(repo.resolve() / ".git" / "config")
        assert services.audit.get_logs(category="repository")[0].action == "bound"

    def test_bind_unknown_profile(self, repos, make_repo):
        with pytest.raises(ProfileNotFoundError):
            repos.bind_repository(make_repo("widgets"), "missing")

    def test_bind_non_repository(self, repos, work, tmp_path):
        with pytest.raises(RepositoryNotFoundError):
            repos.bind_repository(tmp_path, work.id)

    def test_drift_shows_as_mismatch(self, repos, work, make_repo):
        repo = make_repo("widgets")
        repos.bind_repository(repo, work.id)
        config = repo / ".git" / "config"
        config.write_text(config.read_text().replace("jane@corp.com", "me@home.org"))

        fresh = repos.get_repository(repo)

        assert fresh.status == RepositoryStatus.MISMATCH
        assert "me@home.org" in fresh.mismatch_details

    def test_deleted_profile_shows_as_error(self, repos, services, work, make_repo):
        repo = make_repo("widgets")
        repos.bind_repository(repo, work.id)
        services.profiles.delete_profile(work.id)
        assert repos.list_repositories()[0].status == RepositoryStatus.ERROR

    def test_unbind_forgets_but_keeps_local_config(self, repos, services, work, make_repo):
        repo = make_repo("widgets")
        repos.bind_repository(repo, work.id)

        assert repos.unbind_repository(repo) == {"unbound": True}

        stored = services.store.get_repository(str(repo.resolve()))
        assert stored.bound_profile_id is None
        assert stored.status == RepositoryStatus.UNBOUND
        assert "jane@corp.com" in (repo / ".git" / "config").read_text()
        assert services.audit.get_logs(category="repository")[0].action == "unbound"

    def test_update_remotes_points_at_alias(self, repos, services, make_repo, make_key_pair, isolated_home):
        key = make_key_pair(isolated_home / ".ssh", "id_work")
        profile = services.profiles.create_profile(
            {
                "label": "Work",
                "provider": "github",
                "username": "Jane",
                "email": "jane@corp.com",
                "auth_type": "ssh",
                "ssh_key_path": str(key),
            }
        )
        repo = make_repo("widgets")

        result = repos.bind_repository(repo, profile.id, update_remotes=True)

        assert result["repository"].remotes[0].url == "git@github-work:acme/widgets.git"

    def test_update_remotes_skips_other_hosts(self, repos, services, make_repo, make_key_pair, isolated_home):
        key = make_key_pair(isolated_home / ".ssh", "id_work")
        profile = services.profiles.create_profile(
            {
                "label": "Work",
                "provider": "github",
                "username": "Jane",
                "email": "jane@corp.com",
                "auth_type": "ssh",
                "ssh_key_path": str(key),
            }
        )
        repo = make_repo("widgets", remote="git@gitlab.com:acme/widgets.git")

        result = repos.bind_repository(repo, profile.id, update_remotes=True)

        assert result["repository"].remotes[0].url == "git@gitlab.com:acme/widgets.git"


class TestValidate:
    def test_validate_access(self, repos, make_repo):
        check = repos.validate_repository(make_repo("widgets"))
        assert check.success is True
        assert check.outcome == AccessOutcome.SUCCESS

    def test_validate_non_repository(self, repos, tmp_path):
        with pytest.raises(RepositoryNotFoundError):
            repos.validate_repository(tmp_path / "nowhere")
