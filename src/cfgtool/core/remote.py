"""Remote synchronization of the store's main branch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from .errors import NoMainBranch, NonFastForward, NoRemote
from .repository import Remote

if TYPE_CHECKING:
    from .repository import GitRepository

logger = logging.getLogger(__name__)

PREFERRED_REMOTE = "origin"


class SyncState(str, Enum):
    """Relation between the local head and the remote main branch."""

    CLEAN = "clean"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"


@dataclass(frozen=True)
class PullResult:
    """Outcome of pulling the remote main branch."""

    state: SyncState
    old_head: Optional[str]
    new_head: Optional[str]
    remote: str

    @property
    def fast_forwarded(self) -> bool:
        return self.state is SyncState.BEHIND


def select_default_remote(
    remotes: List[Remote], preferred: str = PREFERRED_REMOTE
) -> Optional[str]:
    """Pick the remote to sync with.

    ``preferred`` wins when it is registered, otherwise the first remote in
    registration order, otherwise None.
    """
    names = [remote.name for remote in remotes]
    if preferred in names:
        return preferred
    return names[0] if names else None


class RemoteSyncer:
    """Fetches, fast-forwards and pushes the store's ``main`` branch.

    Only fast-forward merges are ever performed. A diverged history raises
    ``NonFastForward`` and leaves the store untouched.
    """

    def __init__(
        self,
        repo: "GitRepository",
        branch: str = "main",
        preferred_remote: str = PREFERRED_REMOTE,
    ) -> None:
        self.repo = repo
        self.branch = branch
        self.preferred_remote = preferred_remote

    @property
    def branch_ref(self) -> str:
        return f"refs/heads/{self.branch}"

    def remotes(self) -> List[Remote]:
        return self.repo.remotes()

    def add_remote(self, name: str, url: str) -> None:
        """Register ``name`` at ``url``, or point an existing remote at ``url``."""
        if any(remote.name == name for remote in self.repo.remotes()):
            self.repo.set_remote_url(name, url)
            logger.info("Updated remote %s to %s", name, url)
            return

        self.repo.add_remote(name, url)
        logger.info("Added remote %s (%s)", name, url)

    def get_default_remote(self) -> Optional[str]:
        return select_default_remote(self.repo.remotes(), self.preferred_remote)

    def _require_remote(self) -> str:
        remote = self.get_default_remote()
        if remote is None:
            raise NoRemote()
        return remote

    def analyze(self, local: Optional[str], remote: str) -> SyncState:
        """Classify the local head against a fetched remote commit."""
        if local is None:
            # Unborn branch: anything on the remote is a fast-forward
            return SyncState.BEHIND
        if local == remote:
            return SyncState.CLEAN
        if self.repo.is_ancestor(remote, local):
            return SyncState.AHEAD
        if self.repo.is_ancestor(local, remote):
            return SyncState.BEHIND
        return SyncState.DIVERGED

    def state(self) -> SyncState:
        """Fetch the remote main branch and report how the store relates to it.

        Raises:
            NoRemote: If no remote is configured.
            MissingReference: If the remote has no main branch yet.
        """
        remote = self._require_remote()
        fetched = self.repo.fetch(remote, self.branch)
        return self.analyze(self.repo.head(), fetched)

    def pull_main(self) -> PullResult:
        """Fetch the remote main branch and fast-forward to it when possible.

        Raises:
            NoRemote: If no remote is configured.
            MissingReference: If the remote has no main branch (an empty remote).
            NonFastForward: If local and remote history diverged.
            EngineFailure: For any other git failure.
        """
        remote = self._require_remote()
        logger.info("Fetching %s from %s", self.branch, remote)
        fetched = self.repo.fetch(remote, self.branch)
        local = self.repo.head()
        state = self.analyze(local, fetched)

        if state is SyncState.DIVERGED:
            raise NonFastForward(local or "", fetched)

        if state is SyncState.BEHIND:
            self.repo.update_ref(self.branch_ref, fetched, reason=f"fast-forward from {remote}")
            self.repo.reset_hard("HEAD")
            logger.info(
                "Fast-forwarded %s from %s to %s",
                self.branch,
                local[:7] if local else "(none)",
                fetched[:7],
            )
            return PullResult(state=state, old_head=local, new_head=fetched, remote=remote)

        logger.info("Store is %s relative to %s/%s", state.value, remote, self.branch)
        return PullResult(state=state, old_head=local, new_head=local, remote=remote)

    def push_main(self) -> str:
        """Push the local main branch to the default remote and return the remote name.

        Raises:
            NoRemote: If no remote is configured.
            NoMainBranch: If the local main branch does not exist.
        """
        remote = self._require_remote()
        if self.repo.resolve(self.branch_ref) is None:
            raise NoMainBranch(self.branch)

        self.repo.push(remote, f"{self.branch_ref}:{self.branch_ref}")
        logger.info("Pushed %s to %s", self.branch, remote)
        return remote
