"""Change detection between tracked store files and their home copies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List

from .errors import IoFailure

if TYPE_CHECKING:
    from .store import TrackingStore

logger = logging.getLogger(__name__)


class PathMode(str, Enum):
    """How a changed file is rendered for the caller."""

    STORE = "store"
    HOME = "home"


@dataclass(frozen=True)
class ChangeRecord:
    """A tracked file whose home copy no longer matches the store copy."""

    relative_path: Path
    store_path: Path
    home_path: Path

    @property
    def name(self) -> str:
        return self.relative_path.name

    def render(self, mode: PathMode = PathMode.STORE) -> Path:
        """Return the store-relative path or the absolute home path."""
        if mode is PathMode.HOME:
            return self.home_path
        return self.relative_path


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise IoFailure(f"Unable to read {path}: {e.strerror or e}", path) from e


def files_differ(store_path: Path, home_path: Path) -> bool:
    """Compare two files byte for byte.

    Raises:
        IoFailure: If either file cannot be read.
    """
    try:
        if store_path.stat().st_size != home_path.stat().st_size:
            return True
    except OSError as e:
        raise IoFailure(f"Unable to stat {e.filename}: {e.strerror or e}") from e
    return _read_bytes(store_path) != _read_bytes(home_path)


class ChangeDetector:
    """Finds tracked files whose home copy drifted from the store.

    Every call walks the full list of tracked files again; nothing is cached
    between calls. A file that cannot be read on either side aborts the whole
    pass with ``IoFailure`` rather than being skipped.
    """

    def __init__(self, store: "TrackingStore") -> None:
        self.store = store

    def detect_changes(self) -> List[ChangeRecord]:
        """Return a record for every tracked file whose bytes differ."""
        mapper = self.store.mapper
        changes = []
        for store_path in self.store.get_tracked_files():
            relative = mapper.relative_to_store(store_path)
            home_path = mapper.to_home_path(relative)
            if files_differ(store_path, home_path):
                logger.debug("Changed: %s", relative)
                changes.append(
                    ChangeRecord(relative_path=relative, store_path=store_path, home_path=home_path)
                )
        logger.debug("Detected %d changed file(s)", len(changes))
        return changes

    def paths(self, mode: PathMode = PathMode.STORE) -> List[Path]:
        """Return the changed files rendered in ``mode``."""
        return [change.render(mode) for change in self.detect_changes()]
