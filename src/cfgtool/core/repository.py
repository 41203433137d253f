"""Git engine wrapper for the cfgtool store."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union, cast

from .errors import EngineFailure, MissingReference

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^(?P<name>.*) <(?P<email>[^>]*)> \d+ [+-]\d{4}$")
_MISSING_REF_MARKERS = ("couldn't find remote ref", "could not find remote ref")
# Keeps store content byte-identical to the home copies
_STORE_ATTRIBUTES = "* -text -eol -filter -ident -working-tree-encoding -diff -merge\n"
# git messages are parsed, so they must not be translated
_GIT_ENV = {"LC_ALL": "C", "LANGUAGE": "C"}


@dataclass(frozen=True)
class Remote:
    """A remote registered in the store."""

    name: str
    url: str


@dataclass(frozen=True)
class LogEntry:
    """One commit of the store history."""

    sha: str
    author: str
    date: str
    message: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


class GitRepository:
    """The git repository backing the cfgtool store.

    This class is the only place that talks to git. It exposes the small set of
    plumbing operations the store needs: opening or initializing a repository,
    index enumeration and staging, commit creation from a tree, remote
    bookkeeping, fetch and push of a single ref, and the ancestry checks used
    for merge analysis.

    Attributes:
        path (Path): Path to the repository working tree.
    """

    def __init__(self, path: Path):
        """Initialize repository."""
        self.path = Path(path).resolve()
        self.name = self.path.name

    def __str__(self) -> str:
        """Return string representation."""
        return f"GitRepository({self.path})"

    def __repr__(self) -> str:
        """Return string representation."""
        return self.__str__()

    def _run(
        self,
        *args: str,
        check: bool = True,
        input: Optional[str] = None,
        binary: bool = False,
    ) -> subprocess.CompletedProcess:
        """Run a Git command and return the completed process.

        Args:
            *args: Arguments passed to ``git``.
            check: Raise ``EngineFailure`` on a non-zero exit status.
            input: Text sent to the command's standard input.
            binary: Return stdout as bytes instead of text.

        Raises:
            EngineFailure: If the command fails and ``check`` is set, or if git
                cannot be executed at all.
        """
        command = " ".join(["git", *args])
        logger.debug("Running %s in %s", command, self.path)
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=not binary,
                input=input,
                env={**os.environ, **_GIT_ENV},
            )
        except OSError as e:
            raise EngineFailure("Failed to run git", command=command, output=str(e)) from e

        if check and result.returncode != 0:
            stderr = result.stderr.decode(errors="replace") if binary else result.stderr
            stdout = "" if binary else result.stdout
            output = (stderr or stdout).strip()
            if any(marker in output for marker in _MISSING_REF_MARKERS):
                raise MissingReference("Git command failed", command=command, output=output)
            raise EngineFailure("Git command failed", command=command, output=output)
        return cast(subprocess.CompletedProcess, result)

    def _run_git(self, *args: str, input: Optional[str] = None) -> str:
        """Run a Git command and return its stripped output."""
        return cast(str, self._run(*args, input=input).stdout).strip()

    @staticmethod
    def _split_z(output: str) -> List[str]:
        return [entry for entry in output.split("\0") if entry]

    def exists(self) -> bool:
        """Check if the path is the top level of a Git repository."""
        if not self.path.exists() or not self.path.is_dir():
            return False
        result = self._run("rev-parse", "--show-toplevel", check=False)
        if result.returncode != 0:
            return False
        return Path(result.stdout.strip()).resolve() == self.path

    def init(self, branch: str = "main") -> None:
        """Initialize a new, empty Git repository whose unborn branch is ``branch``.

        Raises:
            EngineFailure: If Git operations fail during initialization.
        """
        self.path.mkdir(parents=True, exist_ok=True)
        self._run_git("init")
        self._run_git("symbolic-ref", "HEAD", f"refs/heads/{branch}")
        logger.info("Initialized store repository at %s", self.path)

    def disable_content_rewriting(self) -> None:
        """Stop git from converting file content on its way in or out.

        Tracked ``.gitattributes`` files and user-level ``core.autocrlf`` or
        ``core.attributesFile`` settings would otherwise apply inside the
        store. ``info/attributes`` takes precedence over all of them.
        """
        attributes = self.path / self._run_git("rev-parse", "--git-path", "info/attributes")
        try:
            current = attributes.read_text() if attributes.exists() else ""
            if current != _STORE_ATTRIBUTES:
                attributes.parent.mkdir(parents=True, exist_ok=True)
                attributes.write_text(_STORE_ATTRIBUTES)
        except OSError as e:
            raise EngineFailure(
                "Unable to write git attributes", command=str(attributes), output=str(e)
            ) from e
        self._run_git("config", "core.autocrlf", "false")

    def signature(self) -> Tuple[str, str]:
        """Return the (name, email) git will use as committer.

        Raises:
            EngineFailure: If no identity is configured.
        """
        ident = self._run_git("var", "GIT_COMMITTER_IDENT")
        match = _IDENT_RE.match(ident)
        if not match:
            raise EngineFailure("Unable to parse git identity", command="git var", output=ident)
        return match.group("name"), match.group("email")

    def list_index(self) -> List[str]:
        """Return the paths recorded in the index, relative to the repository root."""
        return self._split_z(self._run("ls-files", "-z").stdout)

    def add(self, path: Union[str, Path]) -> None:
        """Stage a path, relative to the repository root.

        Ignore rules are bypassed: a tracked ``.gitignore`` or a global
        excludes file must not decide what the store records.
        """
        self._run_git("add", "--force", "--", str(path))

    def remove_from_index(self, path: Union[str, Path]) -> None:
        """Drop ``path`` from the index, leaving the working tree alone."""
        self._run_git("rm", "--cached", "--quiet", "--ignore-unmatch", "--", str(path))

    def in_head(self, path: Union[str, Path]) -> bool:
        """Check whether HEAD records ``path``."""
        if self.head() is None:
            return False
        result = self._run("cat-file", "-e", f"HEAD:{path}", check=False)
        return result.returncode == 0

    def checkout_head(self, path: Union[str, Path]) -> None:
        """Restore ``path`` in the index and working tree to its content at HEAD."""
        self._run_git("checkout", "HEAD", "--", str(path))

    def write_tree(self) -> str:
        """Write the index as a tree object and return its id."""
        return self._run_git("write-tree")

    def commit_tree(self, tree: str, message: str, parents: List[str]) -> str:
        """Create a commit object and return its id.

        Author and committer are taken from git's configured identity.
        """
        args = ["commit-tree", tree]
        for parent in parents:
            args.extend(["-p", parent])
        args.extend(["-F", "-"])
        return self._run_git(*args, input=message)

    def resolve(self, rev: str) -> Optional[str]:
        """Return the commit id for ``rev``, or None if it does not resolve."""
        result = self._run("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def tree_of(self, rev: str) -> str:
        """Return the tree id of commit ``rev``."""
        return self._run_git("rev-parse", f"{rev}^{{tree}}")

    def head(self) -> Optional[str]:
        """Return the commit HEAD points to, or None on an unborn branch."""
        return self.resolve("HEAD")

    def update_ref(self, ref: str, sha: str, reason: str = "cfgtool") -> None:
        """Point ``ref`` at ``sha``."""
        self._run_git("update-ref", "-m", reason, ref, sha)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Check whether ``ancestor`` is reachable from ``descendant``."""
        result = self._run("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise EngineFailure(
            "Git command failed",
            command=f"git merge-base --is-ancestor {ancestor} {descendant}",
            output=result.stderr.strip(),
        )

    def reset_hard(self, rev: str = "HEAD") -> None:
        """Make the index and working tree match ``rev``."""
        self._run_git("reset", "--hard", "--quiet", rev)

    def remotes(self) -> List[Remote]:
        """List remotes in the order they were registered."""
        result = self._run("config", "--get-regexp", r"^remote\..*\.url$", check=False)
        if result.returncode == 1:
            # No matching keys
            return []
        if result.returncode != 0:
            raise EngineFailure(
                "Failed to list remotes", command="git config", output=result.stderr.strip()
            )

        remotes = []
        for line in result.stdout.splitlines():
            key, _, url = line.partition(" ")
            remotes.append(Remote(name=key[len("remote.") : -len(".url")], url=url))
        return remotes

    def add_remote(self, name: str, url: str) -> None:
        self._run_git("remote", "add", name, url)

    def set_remote_url(self, name: str, url: str) -> None:
        self._run_git("remote", "set-url", name, url)

    def fetch(self, remote: str, ref: str) -> str:
        """Fetch ``ref`` from ``remote`` and return the fetched commit.

        Raises:
            MissingReference: If the remote does not have ``ref``.
            EngineFailure: For any other fetch failure.
        """
        listing = self._run("ls-remote", "--exit-code", remote, f"refs/heads/{ref}", check=False)
        if listing.returncode == 2:
            # Reachable remote without the branch
            raise MissingReference(
                "Remote has no such branch", command=f"git ls-remote {remote} refs/heads/{ref}"
            )
        self._run_git("fetch", "--quiet", remote, ref)
        sha = self.resolve("FETCH_HEAD")
        if sha is None:
            raise MissingReference(
                "Fetched ref did not resolve", command=f"git fetch {remote} {ref}"
            )
        return sha

    def push(self, remote: str, refspec: str) -> None:
        self._run_git("push", "--quiet", remote, refspec)

    def log(self, path: Optional[str] = None, limit: int = 20) -> List[LogEntry]:
        """Return up to ``limit`` commits reachable from HEAD, newest first."""
        if self.head() is None:
            return []
        args = ["log", f"--max-count={limit}", "--format=%H%x1f%an%x1f%aI%x1f%s"]
        if path is not None:
            args.extend(["--", path])
        entries = []
        for line in self._run_git(*args).splitlines():
            sha, author, date, message = line.split("\x1f", 3)
            entries.append(LogEntry(sha=sha, author=author, date=date, message=message))
        return entries

    def show_file(self, rev: str, path: str) -> bytes:
        """Return the content of ``path`` as recorded in ``rev``."""
        return cast(bytes, self._run("show", f"{rev}:{path}", binary=True).stdout)

    def changed_files(self, old: Optional[str], new: str) -> List[str]:
        """List files that differ between two commits.

        With ``old`` set to None every file of ``new`` is reported.
        """
        if old is None:
            output = self._run("ls-tree", "-r", "--name-only", "-z", new).stdout
        else:
            output = self._run("diff", "--name-only", "--no-renames", "-z", old, new).stdout
        return self._split_z(output)
