"""Translation between home directory paths and store paths."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from .errors import OutOfScopePath

PathLike = Union[str, "os.PathLike[str]"]


def canonicalize(path: PathLike) -> Path:
    """Expand ``~``, resolve symlinks and ``..`` and make ``path`` absolute."""
    return Path(path).expanduser().resolve()


class PathMapper:
    """Maps files below the home directory onto the store and back.

    A file at ``<home>/<relative>`` lives at ``<store>/<relative>`` in the
    store. Both roots are canonicalized once, and every input path is
    canonicalized before it is mapped, so different spellings of the same file
    (symlinks, ``..`` segments, ``~``) always land on the same store path.

    Attributes:
        home_root (Path): Canonical home directory.
        store_root (Path): Canonical store directory.
    """

    def __init__(self, home_root: PathLike, store_root: PathLike) -> None:
        self.home_root = canonicalize(home_root)
        self.store_root = Path(store_root).expanduser().absolute()
        if self.store_root.exists():
            self.store_root = self.store_root.resolve()

    def relative_to_home(self, home_path: PathLike) -> Path:
        """Return ``home_path`` relative to the home directory.

        Raises:
            OutOfScopePath: If the canonical path is not below the home directory.
        """
        path = canonicalize(home_path)
        try:
            relative = path.relative_to(self.home_root)
        except ValueError:
            raise OutOfScopePath(path, self.home_root) from None
        if relative == Path("."):
            raise OutOfScopePath(path, self.home_root)
        return relative

    def to_store_path(self, home_path: PathLike) -> Path:
        """Return the store path mirroring ``home_path``."""
        return self.store_root / self.relative_to_home(home_path)

    def relative_to_store(self, store_path: PathLike) -> Path:
        """Return a store path relative to the store root.

        Relative inputs are taken as already store-relative. ``..`` segments
        are collapsed lexically since the store file may not exist yet.
        """
        path = Path(store_path)
        if not path.is_absolute():
            path = self.store_root / path
        path = Path(os.path.normpath(path))
        try:
            relative = path.relative_to(self.store_root)
        except ValueError:
            raise OutOfScopePath(path, self.store_root) from None
        if relative == Path("."):
            raise OutOfScopePath(path, self.store_root)
        return relative

    def to_home_path(self, store_path: PathLike) -> Path:
        """Return the home path for a store-relative (or absolute store) path."""
        return self.home_root / self.relative_to_store(store_path)
