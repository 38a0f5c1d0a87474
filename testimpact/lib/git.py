"""Git revision source and exceptions.

The analysis engine reads repository state only through the
``RevisionSource`` protocol. ``GitRevisionSource`` implements it on top of
the git command line; ``CachedRevisionSource`` memoizes lookups for the
duration of one analysis.
"""

import subprocess
from pathlib import Path
from typing import Protocol

from testimpact.lib.config import get_settings
from testimpact.lib.logging import get_logger
from testimpact.models.impact import ChangedFile, FileChangeType

logger = get_logger(__name__)

# git diff --name-status codes we report (R is followed by a similarity score)
STATUS_CHANGE_TYPES: dict[str, FileChangeType] = {
    "A": FileChangeType.ADDED,
    "D": FileChangeType.DELETED,
    "M": FileChangeType.MODIFIED,
    "R": FileChangeType.RENAMED,
}

# Report non-ASCII paths verbatim instead of quoted with octal escapes
GIT_CONFIG_ARGS = ("-c", "core.quotePath=false")


class GitError(Exception):
    """Base exception for failed git queries."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
    ):
        self.message = message
        self.command = command
        self.returncode = returncode
        super().__init__(message)


class NotAGitRepositoryError(GitError):
    """Raised when the repository path is not a git work tree."""

    pass


class RevisionNotFoundError(GitError):
    """Raised when a revision name does not resolve to a commit."""

    def __init__(self, message: str, revision: str, **kwargs):
        super().__init__(message, **kwargs)
        self.revision = revision


class RevisionSource(Protocol):
    """Read-only view of repository content at named revisions."""

    def get_file_content(self, path: str, revision: str) -> str | None: ...

    def file_exists(self, path: str, revision: str) -> bool: ...

    def list_all_files(self, revision: str) -> list[str]: ...

    def list_changed_files(self, base_revision: str, head_revision: str) -> list[ChangedFile]: ...

    def resolve_revision(self, revision: str) -> str: ...


def parse_name_status(output: str) -> list[ChangedFile]:
    """
    Parse ``git diff --name-status`` output.

    Args:
        output: Raw command output, one tab-separated entry per line

    Returns:
        Changed files in git order; copies, type changes and unmerged
        entries are skipped
    """
    files: list[ChangedFile] = []

    for line in output.strip().split("\n"):
        if not line.strip():
            continue

        parts = line.split("\t")
        change_type = STATUS_CHANGE_TYPES.get(parts[0][:1])
        if change_type is None:
            continue

        # Renames list the old path then the new path
        path_index = 2 if change_type == FileChangeType.RENAMED else 1
        if len(parts) <= path_index or not parts[path_index]:
            continue

        files.append(ChangedFile(path=parts[path_index], change_type=change_type))

    return files


class GitRevisionSource:
    """Revision source backed by the git command line."""

    def __init__(
        self,
        repo_path: str | Path = ".",
        git_executable: str | None = None,
        timeout: int | None = None,
    ):
        settings = get_settings()
        self.repo_path = Path(repo_path)
        self.git_executable = git_executable or settings.git_executable
        self.timeout = timeout if timeout is not None else settings.git_timeout

        if not (self.repo_path / ".git").exists():
            raise NotAGitRepositoryError(f"Not a git repository: {repo_path}")

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        """Run a git command in the repository without raising on failure."""
        command = [self.git_executable, *GIT_CONFIG_ARGS, *args]
        try:
            return subprocess.run(
                command,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"Git command timed out after {self.timeout}s", command=command) from e
        except OSError as e:
            raise GitError(f"Failed to run git: {e}", command=command) from e

    def _check(self, *args: str) -> str:
        """Run a git command and return stdout, raising GitError on failure."""
        result = self._run(*args)
        if result.returncode != 0:
            raise GitError(
                f"git {' '.join(args)} failed: {result.stderr.strip()}",
                command=[self.git_executable, *GIT_CONFIG_ARGS, *args],
                returncode=result.returncode,
            )
        return result.stdout

    def resolve_revision(self, revision: str) -> str:
        """Return the commit SHA of a revision name."""
        result = self._run("rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}")
        if result.returncode != 0:
            raise RevisionNotFoundError(
                f"Unknown revision: {revision}",
                revision=revision,
                returncode=result.returncode,
            )
        return result.stdout.strip()

    def get_file_content(self, path: str, revision: str) -> str | None:
        """Return file text at a revision, or None when absent."""
        try:
            result = self._run("show", f"{revision}:{path}")
        except GitError as e:
            logger.warning("git_show_failed", path=path, revision=revision, error=e.message)
            return None
        if result.returncode != 0:
            return None
        return result.stdout

    def file_exists(self, path: str, revision: str) -> bool:
        """Check whether a file exists at a revision.

        Directories are tree objects and do not count as files.
        """
        try:
            result = self._run("cat-file", "-t", f"{revision}:{path}")
        except GitError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "blob"

    def list_all_files(self, revision: str) -> list[str]:
        """List every tracked path at a revision."""
        output = self._check("ls-tree", "-r", "--name-only", revision)
        return [line for line in output.strip().split("\n") if line]

    def list_changed_files(self, base_revision: str, head_revision: str) -> list[ChangedFile]:
        """List path-level changes between two revisions."""
        output = self._check("diff", "--name-status", f"{base_revision}..{head_revision}")
        return parse_name_status(output)


class CachedRevisionSource:
    """Memoizing wrapper around another revision source.

    Revisions are immutable once named, so entries are never invalidated.
    """

    def __init__(self, source: RevisionSource):
        self.source = source
        self._content: dict[tuple[str, str], str | None] = {}
        self._exists: dict[tuple[str, str], bool] = {}
        self._files: dict[str, list[str]] = {}

    def get_file_content(self, path: str, revision: str) -> str | None:
        key = (path, revision)
        if key not in self._content:
            self._content[key] = self.source.get_file_content(path, revision)
        return self._content[key]

    def file_exists(self, path: str, revision: str) -> bool:
        key = (path, revision)
        if key not in self._exists:
            if self._content.get(key) is not None:
                self._exists[key] = True
            else:
                self._exists[key] = self.source.file_exists(path, revision)
        return self._exists[key]

    def list_all_files(self, revision: str) -> list[str]:
        if revision not in self._files:
            self._files[revision] = self.source.list_all_files(revision)
        return list(self._files[revision])

    def list_changed_files(self, base_revision: str, head_revision: str) -> list[ChangedFile]:
        return self.source.list_changed_files(base_revision, head_revision)

    def resolve_revision(self, revision: str) -> str:
        return self.source.resolve_revision(revision)


__all__ = [
    "GitError",
    "NotAGitRepositoryError",
    "RevisionNotFoundError",
    "RevisionSource",
    "GitRevisionSource",
    "CachedRevisionSource",
    "parse_name_status",
]
