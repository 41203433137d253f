"""Error types for cfgtool.

Every failure the core can report is a subclass of ``CfgtoolError`` so the
command line layer can catch them in one place and print a readable message.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .changes import ChangeRecord


class CfgtoolError(Exception):
    """Base class for all cfgtool errors."""


class ConfigError(CfgtoolError):
    """Invalid or unreadable configuration."""


class NotAFile(CfgtoolError):
    """The path to track is missing or is not a regular file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"{path} does not exist or is not a regular file")
        self.path = path


class OutOfScopePath(CfgtoolError):
    """The path lies outside the root it must belong to."""

    def __init__(self, path: Path, root: Path) -> None:
        super().__init__(f"{path} is outside {root}; only files below it can be tracked")
        self.path = path
        self.root = root


class NoRemote(CfgtoolError):
    """No remote is configured for the store."""

    def __init__(self) -> None:
        super().__init__("No remote configured, add one with 'cfgtool remote add'")


class NoMainBranch(CfgtoolError):
    """The store has no local main branch yet."""

    def __init__(self, branch: str = "main") -> None:
        super().__init__(f"Branch '{branch}' does not exist yet, track a file first")
        self.branch = branch


class NonFastForward(CfgtoolError):
    """Local and remote history diverged and cannot be fast-forwarded."""

    def __init__(self, local: str, remote: str) -> None:
        super().__init__(
            f"Local main ({local[:7]}) and remote main ({remote[:7]}) have diverged, "
            "refusing to merge"
        )
        self.local = local
        self.remote = remote


class IoFailure(CfgtoolError):
    """Reading, writing or copying a file failed."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class EngineFailure(CfgtoolError):
    """A git command failed."""

    def __init__(self, message: str, command: str = "", output: str = "") -> None:
        """Initialize error."""
        super().__init__(message)
        self.command = command
        self.output = output

    def __str__(self) -> str:
        if self.output:
            return f"{self.args[0]}: {self.output}"
        return str(self.args[0])


class MissingReference(EngineFailure):
    """The requested ref does not exist on the remote (for example an empty remote)."""


class UnsyncedChanges(CfgtoolError):
    """Sync was refused because tracked files changed locally."""

    def __init__(self, changes: List["ChangeRecord"]) -> None:
        names = ", ".join(str(change.relative_path) for change in changes)
        super().__init__(
            f"{len(changes)} tracked file(s) changed locally ({names}); "
            "run 'cfgtool update' first or sync with --force"
        )
        self.changes = changes
