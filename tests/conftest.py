"""Test configuration."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from cfgtool.core.config import Config
from cfgtool.core.orchestrator import SyncOrchestrator
from cfgtool.core.store import TrackingStore


def git(path: Path, *args: str) -> str:
    """Run a git command in ``path`` and return its output."""
    result = subprocess.run(
        ["git", *args], cwd=path, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def commit_parents(repo_path: Path, rev: str = "HEAD") -> list:
    """Return the parent commit ids of ``rev``."""
    return git(repo_path, "rev-list", "--parents", "-n", "1", rev).split()[1:]


@pytest.fixture(autouse=True)
def git_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git a fixed identity and keep the user's git config out of the tests."""
    global_config = tmp_path / "gitconfig"
    global_config.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Create a fake home directory with a couple of dotfiles."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".bashrc").write_text("export EDITOR=vim\n")
    (home / ".config" / "nvim").mkdir(parents=True)
    (home / ".config" / "nvim" / "init.lua").write_text("vim.o.number = true\n")
    return home.resolve()


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """Location of the store; not created up front."""
    return tmp_path.resolve() / "data" / "cfgtool" / "repo"


@pytest.fixture
def store(home_dir: Path, store_dir: Path) -> TrackingStore:
    """Create a tracking store for the fake home directory."""
    return TrackingStore(home_dir, store_dir)


@pytest.fixture
def test_config(home_dir: Path, store_dir: Path) -> Config:
    """Create a test configuration pointing at the fake home and store."""
    return Config(home_dir=home_dir, store_dir=store_dir)


@pytest.fixture
def orchestrator(test_config: Config) -> SyncOrchestrator:
    """Create an orchestrator for the test configuration."""
    return SyncOrchestrator(test_config)


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """Create an empty bare repository to sync with."""
    path = tmp_path / "remote.git"
    path.mkdir()
    git(path, "init", "--bare", "--quiet")
    return path


@pytest.fixture
def other_machine(tmp_path: Path, remote_repo: Path) -> SyncOrchestrator:
    """A second home and store syncing with the same remote."""
    home = tmp_path / "other_home"
    home.mkdir()
    config = Config(home_dir=home, store_dir=tmp_path / "other_data" / "repo")
    orchestrator = SyncOrchestrator(config)
    orchestrator.syncer.add_remote("origin", str(remote_repo))
    return orchestrator
