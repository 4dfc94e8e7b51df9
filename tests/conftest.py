from datetime import datetime, timezone
from pathlib import Path

import pytest
from git import Repo

from addon_release.core.git import GitService
from addon_release.core.github import PullRequestAlreadyExists, PullRequestInfo
from addon_release.core.workspace import RepositoryWorkspace
from addon_release.settings import reset_settings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep git identity, settings and the config file inside the test sandbox."""
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(var, "Addon Release Tests")
    for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(var, "tests@example.com")
    monkeypatch.setenv("ADDON_RELEASE_CONFIG_PATH", str(tmp_path / "home" / "config.json"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def origin(tmp_path) -> Repo:
    """Bare repository standing in for the marketplace remote, with one commit on main."""
    seed_path = tmp_path / "seed"
    seed = Repo.init(seed_path, initial_branch="main")
    (seed_path / "README.md").write_text("marketplace addons\n")
    seed.index.add(["README.md"])
    seed.index.commit("Initial commit")
    bare = seed.clone(str(tmp_path / "origin.git"), bare=True)
    seed.close()
    return bare


@pytest.fixture
def workspace(tmp_path) -> RepositoryWorkspace:
    return RepositoryWorkspace(tmp_path / "work", "marketplace", GitService(timeout=60))


@pytest.fixture
def stage_artifact(tmp_path):
    """Create ``unzipped-<name>/<name>.tgz`` under a staging root and return the root."""

    def _stage(name: str, content: bytes = b"packaged chart") -> Path:
        staging_root = tmp_path / "staging"
        staging_dir = staging_root / f"unzipped-{name}"
        staging_dir.mkdir(parents=True, exist_ok=True)
        (staging_dir / f"{name}.tgz").write_bytes(content)
        return staging_root

    return _stage


def make_pr_info(number: int = 7, *, title: str = "", head: str = "", base: str = "main") -> PullRequestInfo:
    return PullRequestInfo(
        number=number,
        title=title,
        state="open",
        url=f"https://api.github.com/repos/acme/marketplace/pulls/{number}",
        html_url=f"https://github.com/acme/marketplace/pull/{number}",
        head_ref=head,
        base_ref=base,
        draft=False,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class FakeSecrets:
    def __init__(self, value: str = "ghp_test", error: Exception | None = None, on_fetch=None) -> None:
        self.value = value
        self.error = error
        self.on_fetch = on_fetch
        self.requested: list[str] = []

    def get_secret(self, name: str) -> str:
        self.requested.append(name)
        if self.on_fetch is not None:
            self.on_fetch(name)
        if self.error is not None:
            raise self.error
        return self.value


class FakePullRequests:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict] = []

    def open_pull_request(self, credential, owner, repo, *, title, body, base, head):
        self.calls.append(
            {
                "credential": credential,
                "owner": owner,
                "repo": repo,
                "title": title,
                "body": body,
                "base": base,
                "head": head,
            }
        )
        if self.error is not None:
            raise self.error
        return make_pr_info(title=title, head=head, base=base)


@pytest.fixture
def fake_secrets() -> FakeSecrets:
    return FakeSecrets()


@pytest.fixture
def fake_pull_requests() -> FakePullRequests:
    return FakePullRequests()


def remote_branches(repo: Repo) -> set[str]:
    return {head.name for head in repo.heads}


def already_exists(existing: PullRequestInfo | None = None) -> PullRequestAlreadyExists:
    return PullRequestAlreadyExists("A pull request already exists", existing=existing)
