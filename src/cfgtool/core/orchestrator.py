"""High level track, update, sync and status operations."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .changes import ChangeDetector, ChangeRecord
from .config import Config
from .errors import IoFailure, MissingReference, NoRemote, UnsyncedChanges
from .paths import PathLike, PathMapper
from .remote import PullResult, RemoteSyncer
from .repository import LogEntry
from .store import TrackingStore, TrackResult

logger = logging.getLogger(__name__)

# Returns the commit message for a changed file, or None to leave it alone
CommitDecision = Callable[[ChangeRecord], Optional[str]]


@dataclass
class SyncResult:
    """Outcome of a sync."""

    remote: str
    pull: Optional[PullResult]
    pushed: bool
    restored: List[Path] = field(default_factory=list)

    @property
    def remote_was_empty(self) -> bool:
        return self.pull is None


@dataclass
class StatusEntry:
    relative_path: Path
    home_path: Path
    store_path: Path


@dataclass
class StatusReport:
    """Tracked files, in home-relative form."""

    store_root: Path
    entries: List[StatusEntry] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.entries


class SyncOrchestrator:
    """Entry point used by the command line.

    Wires a TrackingStore, ChangeDetector and RemoteSyncer together from an
    explicit configuration. The store owns the git handle; the detector and
    syncer borrow it.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.store = TrackingStore(config.home_dir, config.store_dir, branch=config.branch)
        self.detector = ChangeDetector(self.store)
        self.syncer = RemoteSyncer(
            self.store.repo, branch=config.branch, preferred_remote=config.remote_name
        )

    @property
    def mapper(self) -> PathMapper:
        return self.store.mapper

    def track(self, path: PathLike, message: Optional[str] = None) -> TrackResult:
        """Track ``path`` unless the store already has it."""
        if self.store.is_tracked(path):
            relative = self.mapper.relative_to_home(path)
            logger.info("%s is already tracked", relative)
            return TrackResult(
                home_path=self.mapper.home_root / relative,
                store_path=self.store.root / relative,
                relative_path=relative,
                already_tracked=True,
            )
        return self.store.track_file(path, message)

    def pending_changes(self) -> List[ChangeRecord]:
        return self.detector.detect_changes()

    def update(self, decide: CommitDecision) -> List[TrackResult]:
        """Commit changed files the caller accepts.

        ``decide`` is called once per changed file and returns the commit
        message, or None to skip the file. An unreadable file aborts the whole
        pass before anything is committed.
        """
        results = []
        for change in self.detector.detect_changes():
            message = decide(change)
            if message is None:
                logger.info("Skipped %s", change.relative_path)
                continue
            results.append(self.store.track_file(change.home_path, message))
        return results

    def sync(self, force: bool = False) -> SyncResult:
        """Pull, push and copy changed store files back to the home directory.

        Raises:
            UnsyncedChanges: If tracked files changed locally and ``force`` is
                not set. Nothing is fetched or pushed in that case.
            NoRemote: If no remote is configured.
            NonFastForward: If local and remote history diverged.
        """
        if not force:
            changes = self.detector.detect_changes()
            if changes:
                raise UnsyncedChanges(changes)

        remote = self.syncer.get_default_remote()
        if remote is None:
            raise NoRemote()

        pull: Optional[PullResult]
        try:
            pull = self.syncer.pull_main()
        except MissingReference:
            logger.info("Remote %s has no %s branch yet, pushing", remote, self.config.branch)
            pull = None

        self.syncer.push_main()

        restored: List[Path] = []
        if pull is not None and pull.fast_forwarded and pull.new_head:
            for entry in self.store.repo.changed_files(pull.old_head, pull.new_head):
                if not (self.store.root / entry).is_file():
                    # Removed upstream; untracking is not supported
                    continue
                restored.append(self._restore_home(Path(entry)))
        return SyncResult(remote=remote, pull=pull, pushed=True, restored=restored)

    def _restore_home(self, relative: Path) -> Path:
        """Copy a store file over its home counterpart."""
        source = self.store.root / relative
        target = self.mapper.to_home_path(relative)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise IoFailure(f"Unable to copy {source} to {target}: {e}", target) from e
        logger.info("Restored %s", target)
        return target

    def status(self) -> StatusReport:
        """List every tracked file with its home location."""
        report = StatusReport(store_root=self.store.root)
        for store_path in self.store.get_tracked_files():
            relative = self.mapper.relative_to_store(store_path)
            report.entries.append(
                StatusEntry(
                    relative_path=relative,
                    home_path=self.mapper.to_home_path(relative),
                    store_path=store_path,
                )
            )
        return report

    def history(self, path: Optional[PathLike] = None, limit: int = 20) -> List[LogEntry]:
        return self.store.history(path, limit=limit)

    def rollback(
        self, path: PathLike, revision: str, message: Optional[str] = None
    ) -> TrackResult:
        """Restore a tracked file to ``revision`` in the store and in the home directory."""
        result = self.store.restore_version(path, revision, message)
        self._restore_home(result.relative_path)
        return result
