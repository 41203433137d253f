"""Core functionality for cfgtool."""

from .changes import ChangeDetector, ChangeRecord, PathMode
from .config import Config
from .errors import (
    CfgtoolError,
    ConfigError,
    EngineFailure,
    IoFailure,
    MissingReference,
    NoMainBranch,
    NonFastForward,
    NoRemote,
    NotAFile,
    OutOfScopePath,
    UnsyncedChanges,
)
from .orchestrator import StatusReport, SyncOrchestrator, SyncResult
from .paths import PathMapper
from .remote import PullResult, RemoteSyncer, SyncState
from .repository import GitRepository, LogEntry, Remote
from .store import TrackingStore, TrackResult

__all__ = [
    "CfgtoolError",
    "ChangeDetector",
    "ChangeRecord",
    "Config",
    "ConfigError",
    "EngineFailure",
    "GitRepository",
    "IoFailure",
    "LogEntry",
    "MissingReference",
    "NoMainBranch",
    "NoRemote",
    "NonFastForward",
    "NotAFile",
    "OutOfScopePath",
    "PathMapper",
    "PathMode",
    "PullResult",
    "Remote",
    "RemoteSyncer",
    "StatusReport",
    "SyncOrchestrator",
    "SyncResult",
    "SyncState",
    "TrackResult",
    "TrackingStore",
    "UnsyncedChanges",
]
