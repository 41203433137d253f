"""The versioned store that mirrors tracked home files."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from .errors import CfgtoolError, IoFailure, NotAFile, OutOfScopePath
from .paths import PathLike, PathMapper, canonicalize
from .repository import GitRepository, LogEntry

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


@dataclass(frozen=True)
class TrackResult:
    """Outcome of tracking or committing one file."""

    home_path: Path
    store_path: Path
    relative_path: Path
    commit: Optional[str] = None
    message: Optional[str] = None
    already_tracked: bool = False


class TrackingStore:
    """Owns the git repository that stores tracked files.

    The store is a plain git working tree. A home file ``~/<relative>`` is
    copied to ``<store>/<relative>``, staged and committed on ``main``. The set
    of tracked files is whatever git's index says; the in-memory cache is only
    a mirror, rebuilt from the index when the store is opened.

    Opening an existing store never touches its history. Only one
    TrackingStore should operate on a given store directory at a time; other
    components borrow ``repo`` and ``mapper`` from it instead of opening their
    own handles.

    Attributes:
        repo (GitRepository): The one handle on the store repository.
        mapper (PathMapper): Home/store path translation.
        branch (str): The branch commits are recorded on.
    """

    def __init__(
        self, home_root: PathLike, store_root: PathLike, branch: str = DEFAULT_BRANCH
    ) -> None:
        store_path = Path(store_root).expanduser()
        try:
            store_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailure(f"Unable to create store at {store_path}: {e}", store_path) from e

        self.branch = branch
        self.repo = GitRepository(store_path)
        if not self.repo.exists():
            self.repo.init(branch)
        else:
            logger.debug("Opened existing store at %s", self.repo.path)
        self.repo.disable_content_rewriting()

        self.mapper = PathMapper(home_root, self.repo.path)
        self._tracked: Set[Path] = {Path(entry) for entry in self.repo.list_index()}
        logger.debug("Store has %d tracked file(s)", len(self._tracked))

    @property
    def root(self) -> Path:
        return self.repo.path

    @property
    def tracked(self) -> List[Path]:
        """Cached store-relative paths of tracked files."""
        return sorted(self._tracked)

    def head(self) -> Optional[str]:
        return self.repo.head()

    def _relative_in_store(self, home_path: Path) -> Path:
        """Map a canonical home path and make sure it stays out of git's metadata."""
        if home_path == self.root or self.root in home_path.parents:
            raise IoFailure(f"{home_path} is inside the store itself", home_path)
        relative = self.mapper.relative_to_home(home_path)
        if relative.parts[0] == ".git":
            raise IoFailure(f"{home_path} would overwrite the store's git metadata", home_path)
        return relative

    def track_file(self, home_path: PathLike, message: Optional[str] = None) -> TrackResult:
        """Copy a home file into the store and commit it.

        Args:
            home_path: File below the home directory.
            message: Commit message, defaults to ``"Tracked file <name>"``.

        Returns:
            TrackResult: Paths involved and the new commit id (None when the
                store already held identical content).

        Raises:
            NotAFile: If ``home_path`` is not an existing regular file.
            OutOfScopePath: If ``home_path`` is outside the home directory.
            IoFailure: If the copy fails.
            EngineFailure: If staging or committing fails.
        """
        source = Path(home_path).expanduser()
        if not source.is_file():
            raise NotAFile(source)

        source = canonicalize(source)
        relative = self._relative_in_store(source)
        target = self.root / relative

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise IoFailure(f"Unable to copy {source} to {target}: {e}", source) from e
        self._tracked.add(relative)

        if message is None:
            message = f"Tracked file {relative.name}"
        commit = self._commit_or_revert(relative, message)
        return TrackResult(
            home_path=source,
            store_path=target,
            relative_path=relative,
            commit=commit,
            message=message,
        )

    def _commit(self, relative: Path, message: str) -> Optional[str]:
        """Stage ``relative`` and commit the index on top of HEAD.

        The first commit of the store has no parent; every later commit has
        the current head as its only parent. Nothing is committed when the
        resulting tree equals the head's tree.
        """
        name, email = self.repo.signature()
        self.repo.add(relative.as_posix())
        tree = self.repo.write_tree()

        parent = self.repo.head()
        if parent is not None and self.repo.tree_of(parent) == tree:
            logger.info("No changes to commit for %s", relative)
            return None

        parents = [parent] if parent is not None else []
        commit = self.repo.commit_tree(tree, message, parents)
        summary = message.strip().splitlines()[0] if message.strip() else relative.name
        self.repo.update_ref("HEAD", commit, reason=f"commit: {summary}")
        logger.info("Committed %s as %s (%s <%s>)", relative, commit[:7], name, email)
        return commit

    def _commit_or_revert(self, relative: Path, message: str) -> Optional[str]:
        """Commit ``relative``, putting its store copy back to HEAD if the commit fails.

        A file HEAD does not know is removed from the store and the cache, so
        a failed first track can be retried.
        """
        try:
            return self._commit(relative, message)
        except CfgtoolError:
            logger.debug("Commit of %s failed, reverting the store copy", relative)
            self._revert(relative)
            raise

    def _revert(self, relative: Path) -> None:
        path = relative.as_posix()
        try:
            if self.repo.in_head(path):
                self.repo.checkout_head(path)
                return
            self._tracked.discard(relative)
            (self.root / relative).unlink()
            self.repo.remove_from_index(path)
        except (CfgtoolError, OSError) as e:
            # The original commit failure is what gets reported
            logger.warning("Unable to revert %s in the store: %s", relative, e)

    def is_tracked(self, home_path: PathLike) -> bool:
        """Check whether the store holds a copy of ``home_path``.

        This looks at the store directory directly rather than the cache.
        """
        try:
            store_path = self.mapper.to_store_path(home_path)
        except (OutOfScopePath, OSError, RuntimeError):
            return False
        return store_path.exists()

    def get_tracked_files(self) -> List[Path]:
        """Return absolute store paths of all files in the index."""
        return [self.root / entry for entry in self.repo.list_index()]

    def history(self, home_path: Optional[PathLike] = None, limit: int = 20) -> List[LogEntry]:
        """Return the store history, optionally limited to one tracked file."""
        path = None
        if home_path is not None:
            path = self.mapper.relative_to_home(home_path).as_posix()
        return self.repo.log(path, limit=limit)

    def restore_version(
        self, home_path: PathLike, revision: str, message: Optional[str] = None
    ) -> TrackResult:
        """Replace a tracked file's store copy with its content at ``revision`` and commit.

        Raises:
            NotAFile: If the file is not tracked.
            EngineFailure: If ``revision`` does not contain the file.
            IoFailure: If the store copy cannot be written.
        """
        relative = self.mapper.relative_to_home(home_path)
        if relative.as_posix() not in self.repo.list_index():
            raise NotAFile(self.mapper.home_root / relative)

        content = self.repo.show_file(revision, relative.as_posix())
        target = self.root / relative
        try:
            target.write_bytes(content)
        except OSError as e:
            raise IoFailure(f"Unable to write {target}: {e}", target) from e

        if message is None:
            short = self.repo.resolve(revision) or revision
            message = f"Rolled back {relative.name} to {short[:7]}"
        commit = self._commit_or_revert(relative, message)
        return TrackResult(
            home_path=self.mapper.home_root / relative,
            store_path=target,
            relative_path=relative,
            commit=commit,
            message=message,
        )
