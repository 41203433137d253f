"""Tests for change detection."""

from pathlib import Path

import pytest

from cfgtool.core.changes import ChangeDetector, PathMode, files_differ
from cfgtool.core.errors import IoFailure
from cfgtool.core.store import TrackingStore


@pytest.fixture
def detector(store: TrackingStore, home_dir: Path) -> ChangeDetector:
    """Create a detector over a store tracking two files."""
    store.track_file(home_dir / ".bashrc")
    store.track_file(home_dir / ".config" / "nvim" / "init.lua")
    return ChangeDetector(store)


def test_no_changes_after_track(detector: ChangeDetector) -> None:
    """Test that freshly tracked files are not reported."""
    assert detector.detect_changes() == []


def test_detects_modified_file(detector: ChangeDetector, home_dir: Path) -> None:
    """Test that a modified home file yields exactly one record."""
    (home_dir / ".bashrc").write_text("export EDITOR=vim\nalias ll='ls -l'\n")

    changes = detector.detect_changes()
    assert len(changes) == 1
    assert changes[0].relative_path == Path(".bashrc")
    assert changes[0].home_path == home_dir / ".bashrc"
    assert changes[0].store_path == detector.store.root / ".bashrc"


def test_detects_same_size_change(detector: ChangeDetector, home_dir: Path) -> None:
    """Test that content differences of equal size are detected."""
    (home_dir / ".bashrc").write_text("export EDITOR=vi \n")
    assert [c.relative_path for c in detector.detect_changes()] == [Path(".bashrc")]


def test_detection_is_not_cached(detector: ChangeDetector, home_dir: Path) -> None:
    """Test that every call reflects the current file contents."""
    bashrc = home_dir / ".bashrc"
    original = bashrc.read_text()
    bashrc.write_text("changed\n")
    assert len(detector.detect_changes()) == 1

    bashrc.write_text(original)
    assert detector.detect_changes() == []


def test_render_modes(detector: ChangeDetector, home_dir: Path) -> None:
    """Test store-relative and home-absolute rendering."""
    (home_dir / ".config" / "nvim" / "init.lua").write_text("vim.o.number = false\n")

    assert detector.paths(PathMode.STORE) == [Path(".config/nvim/init.lua")]
    assert detector.paths(PathMode.HOME) == [home_dir / ".config" / "nvim" / "init.lua"]


def test_missing_home_file_fails_whole_pass(detector: ChangeDetector, home_dir: Path) -> None:
    """Test that an unreadable file aborts detection instead of being skipped."""
    (home_dir / ".bashrc").unlink()
    (home_dir / ".config" / "nvim" / "init.lua").write_text("changed\n")

    with pytest.raises(IoFailure):
        detector.detect_changes()


def test_files_differ(tmp_path: Path) -> None:
    """Test the byte comparison helper."""
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"\x00\x01")
    b.write_bytes(b"\x00\x01")
    assert not files_differ(a, b)

    b.write_bytes(b"\x00\x02")
    assert files_differ(a, b)

    b.write_bytes(b"\x00")
    assert files_differ(a, b)
