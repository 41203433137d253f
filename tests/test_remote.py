"""Tests for remote synchronization."""

from pathlib import Path

import pytest
from conftest import git

from cfgtool.core.errors import MissingReference, NoMainBranch, NonFastForward, NoRemote
from cfgtool.core.remote import RemoteSyncer, SyncState, select_default_remote
from cfgtool.core.repository import Remote
from cfgtool.core.store import TrackingStore


@pytest.fixture
def syncer(store: TrackingStore) -> RemoteSyncer:
    """Create a syncer borrowing the store's repository."""
    return RemoteSyncer(store.repo)


@pytest.fixture
def second_store(tmp_path: Path, remote_repo: Path) -> TrackingStore:
    """A store on another machine syncing with the same remote."""
    home = tmp_path / "laptop_home"
    home.mkdir()
    store = TrackingStore(home, tmp_path / "laptop_data" / "repo")
    store.repo.add_remote("origin", str(remote_repo))
    return store


def test_select_default_remote() -> None:
    """Test the default remote selection rule."""
    assert select_default_remote([]) is None
    assert select_default_remote([Remote("b", "u1"), Remote("a", "u2")]) == "b"
    assert select_default_remote([Remote("b", "u1"), Remote("origin", "u2")]) == "origin"


def test_add_remote_prefers_origin(syncer: RemoteSyncer) -> None:
    """Test that origin is the default even when added last."""
    assert syncer.get_default_remote() is None
    syncer.add_remote("backup", "/tmp/backup.git")
    assert syncer.get_default_remote() == "backup"
    syncer.add_remote("origin", "/tmp/origin.git")
    assert syncer.get_default_remote() == "origin"
    assert [remote.name for remote in syncer.remotes()] == ["backup", "origin"]


def test_add_remote_repoints_existing(syncer: RemoteSyncer) -> None:
    """Test that adding a known remote changes its URL."""
    syncer.add_remote("origin", "/tmp/one.git")
    syncer.add_remote("origin", "/tmp/two.git")
    assert syncer.remotes() == [Remote("origin", "/tmp/two.git")]


def test_push_without_remote(syncer: RemoteSyncer) -> None:
    """Test that pushing requires a remote."""
    with pytest.raises(NoRemote):
        syncer.push_main()
    with pytest.raises(NoRemote):
        syncer.pull_main()


def test_push_without_main_branch(syncer: RemoteSyncer, remote_repo: Path) -> None:
    """Test that an empty store cannot be pushed."""
    syncer.add_remote("origin", str(remote_repo))
    with pytest.raises(NoMainBranch):
        syncer.push_main()


def test_pull_from_empty_remote(syncer: RemoteSyncer, remote_repo: Path) -> None:
    """Test that an empty remote is reported as a missing reference."""
    syncer.add_remote("origin", str(remote_repo))
    with pytest.raises(MissingReference):
        syncer.pull_main()


def test_push_then_fast_forward(
    store: TrackingStore,
    syncer: RemoteSyncer,
    second_store: TrackingStore,
    home_dir: Path,
    remote_repo: Path,
) -> None:
    """Test pushing from one store and fast-forwarding another."""
    syncer.add_remote("origin", str(remote_repo))
    store.track_file(home_dir / ".bashrc")
    assert syncer.push_main() == "origin"
    assert git(remote_repo, "rev-parse", "refs/heads/main") == store.head()

    result = RemoteSyncer(second_store.repo).pull_main()
    assert result.state is SyncState.BEHIND
    assert result.fast_forwarded
    assert result.old_head is None
    assert result.new_head == store.head()
    assert second_store.head() == store.head()
    assert (second_store.root / ".bashrc").read_text() == "export EDITOR=vim\n"
    assert second_store.get_tracked_files() == [second_store.root / ".bashrc"]


def test_pull_when_clean_or_ahead(
    store: TrackingStore, syncer: RemoteSyncer, home_dir: Path, remote_repo: Path
) -> None:
    """Test that pulling without new remote commits changes nothing."""
    syncer.add_remote("origin", str(remote_repo))
    store.track_file(home_dir / ".bashrc")
    syncer.push_main()

    result = syncer.pull_main()
    assert result.state is SyncState.CLEAN
    assert not result.fast_forwarded

    head = store.track_file(home_dir / ".config" / "nvim" / "init.lua").commit
    assert syncer.state() is SyncState.AHEAD
    result = syncer.pull_main()
    assert result.state is SyncState.AHEAD
    assert store.head() == head


def test_pull_diverged(
    store: TrackingStore,
    syncer: RemoteSyncer,
    second_store: TrackingStore,
    home_dir: Path,
    remote_repo: Path,
) -> None:
    """Test that diverged histories are refused."""
    syncer.add_remote("origin", str(remote_repo))
    store.track_file(home_dir / ".bashrc")
    syncer.push_main()

    other = RemoteSyncer(second_store.repo)
    other.pull_main()
    laptop_file = second_store.mapper.home_root / ".vimrc"
    laptop_file.write_text("set number\n")
    second_store.track_file(laptop_file)
    other.push_main()

    local_head = store.track_file(home_dir / ".config" / "nvim" / "init.lua").commit
    assert syncer.state() is SyncState.DIVERGED
    with pytest.raises(NonFastForward):
        syncer.pull_main()
    assert store.head() == local_head
    assert not (store.root / ".vimrc").exists()
