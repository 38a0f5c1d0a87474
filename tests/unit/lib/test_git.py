"""Unit tests for the git revision source.

All GitRevisionSource tests mock subprocess.run, except the integration
tests at the bottom which build a throwaway repository.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from testimpact.lib.git import (
    CachedRevisionSource,
    GitError,
    GitRevisionSource,
    NotAGitRepositoryError,
    RevisionNotFoundError,
    parse_name_status,
)
from testimpact.models.impact import ChangedFile, FileChangeType


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    process = MagicMock()
    process.returncode = returncode
    process.stdout = stdout
    process.stderr = stderr
    return process


@pytest.fixture
def mock_git_repo(tmp_path):
    """Directory that looks like a git work tree."""
    (tmp_path / ".git").mkdir()
    return tmp_path


# ============================================================================
# Tests for parse_name_status()
# ============================================================================


class TestParseNameStatus:
    """Tests for parse_name_status function."""

    def test_empty_output(self):
        assert parse_name_status("") == []
        assert parse_name_status("\n\n") == []

    def test_basic_statuses(self):
        output = "A\tnew.ts\nD\tgone.ts\nM\tchanged.spec.ts\n"

        assert parse_name_status(output) == [
            ChangedFile("new.ts", FileChangeType.ADDED),
            ChangedFile("gone.ts", FileChangeType.DELETED),
            ChangedFile("changed.spec.ts", FileChangeType.MODIFIED),
        ]

    def test_rename_uses_new_path(self):
        output = "R087\ttests/old.spec.ts\ttests/new.spec.ts\n"

        assert parse_name_status(output) == [
            ChangedFile("tests/new.spec.ts", FileChangeType.RENAMED)
        ]

    def test_unsupported_statuses_are_skipped(self):
        output = "C100\ta.ts\tb.ts\nT\tlink\nU\tconflict.ts\nM\tkept.ts\n"

        assert parse_name_status(output) == [ChangedFile("kept.ts", FileChangeType.MODIFIED)]


# ============================================================================
# Tests for GitRevisionSource
# ============================================================================


class TestGitRevisionSource:
    """Tests for GitRevisionSource with mocked git."""

    def test_not_a_git_repository(self, tmp_path):
        with pytest.raises(NotAGitRepositoryError) as exc_info:
            GitRevisionSource(tmp_path)

        assert "not a git repository" in exc_info.value.message.lower()

    def test_get_file_content(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(stdout="test('a', () => {});\n")
            content = source.get_file_content("a.spec.ts", "abc123")

        assert content == "test('a', () => {});\n"
        command = mock_run.call_args.args[0]
        assert command == ["git", "-c", "core.quotePath=false", "show", "abc123:a.spec.ts"]
        assert mock_run.call_args.kwargs["cwd"] == mock_git_repo

    def test_get_file_content_absent(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(returncode=128, stderr="fatal: path does not exist")
            assert source.get_file_content("missing.ts", "abc123") is None

    def test_get_file_content_timeout_is_absent(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo, timeout=1)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=1)
            assert source.get_file_content("slow.ts", "abc123") is None

    def test_file_exists(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.side_effect = [_completed(0, stdout="blob\n"), _completed(128)]
            assert source.file_exists("a.ts", "head") is True
            assert source.file_exists("b.ts", "head") is False

        assert mock_run.call_args_list[0].args[0][-3:] == ["cat-file", "-t", "head:a.ts"]

    def test_directory_is_not_a_file(self, mock_git_repo):
        """Tree objects must not satisfy an import path lookup."""
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(0, stdout="tree\n")
            assert source.file_exists("tests/pages", "head") is False

    def test_paths_are_not_quoted(self, mock_git_repo):
        """Every git call disables core.quotePath."""
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(stdout="tests/café.spec.ts\n")
            assert source.list_all_files("head") == ["tests/café.spec.ts"]

        assert mock_run.call_args.args[0][:3] == ["git", "-c", "core.quotePath=false"]

    def test_list_all_files(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(stdout="a.spec.ts\nlib/x.ts\n")
            assert source.list_all_files("head") == ["a.spec.ts", "lib/x.ts"]

    def test_list_all_files_failure_raises(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(returncode=128, stderr="fatal: bad tree")
            with pytest.raises(GitError) as exc_info:
                source.list_all_files("nope")

        assert exc_info.value.returncode == 128
        assert "bad tree" in exc_info.value.message

    def test_list_changed_files(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(stdout="M\tpackage.json\n")
            changes = source.list_changed_files("main", "feature")

        assert changes == [ChangedFile("package.json", FileChangeType.MODIFIED)]
        assert mock_run.call_args.args[0] == [
            "git",
            "-c",
            "core.quotePath=false",
            "diff",
            "--name-status",
            "main..feature",
        ]

    def test_resolve_revision(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(stdout="0123abcd\n")
            assert source.resolve_revision("main") == "0123abcd"

    def test_resolve_unknown_revision(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo)

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.return_value = _completed(returncode=1)
            with pytest.raises(RevisionNotFoundError) as exc_info:
                source.resolve_revision("does-not-exist")

        assert exc_info.value.revision == "does-not-exist"

    def test_missing_git_binary(self, mock_git_repo):
        source = GitRevisionSource(mock_git_repo, git_executable="no-such-git")

        with patch("testimpact.lib.git.subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("no-such-git")
            with pytest.raises(GitError):
                source.list_changed_files("a", "b")


# ============================================================================
# Tests for CachedRevisionSource
# ============================================================================


class TestCachedRevisionSource:
    """Tests for CachedRevisionSource."""

    def test_content_is_fetched_once_per_path_and_revision(self):
        inner = MagicMock()
        inner.get_file_content.return_value = "content"
        cached = CachedRevisionSource(inner)

        assert cached.get_file_content("a.ts", "head") == "content"
        assert cached.get_file_content("a.ts", "head") == "content"
        assert cached.get_file_content("a.ts", "base") == "content"

        assert inner.get_file_content.call_count == 2

    def test_absent_content_is_cached(self):
        inner = MagicMock()
        inner.get_file_content.return_value = None
        cached = CachedRevisionSource(inner)

        cached.get_file_content("gone.ts", "head")
        cached.get_file_content("gone.ts", "head")

        inner.get_file_content.assert_called_once_with("gone.ts", "head")

    def test_exists_uses_cached_content(self):
        inner = MagicMock()
        inner.get_file_content.return_value = "x"
        cached = CachedRevisionSource(inner)

        cached.get_file_content("a.ts", "head")

        assert cached.file_exists("a.ts", "head") is True
        inner.file_exists.assert_not_called()

    def test_exists_is_cached(self):
        inner = MagicMock()
        inner.file_exists.return_value = False
        cached = CachedRevisionSource(inner)

        assert cached.file_exists("a.ts", "head") is False
        assert cached.file_exists("a.ts", "head") is False
        inner.file_exists.assert_called_once_with("a.ts", "head")

    def test_file_list_is_cached_and_copied(self):
        inner = MagicMock()
        inner.list_all_files.return_value = ["a.spec.ts"]
        cached = CachedRevisionSource(inner)

        first = cached.list_all_files("head")
        first.append("mutated")

        assert cached.list_all_files("head") == ["a.spec.ts"]
        inner.list_all_files.assert_called_once_with("head")


# ============================================================================
# Integration with a real repository
# ============================================================================


@pytest.mark.integration
class TestGitRevisionSourceIntegration:
    """Tests against a real git repository."""

    def test_reads_both_revisions(self, git_repo):
        repo, base_sha, head_sha = git_repo
        source = GitRevisionSource(repo)

        assert source.resolve_revision(head_sha) == head_sha
        assert "=> 1" in source.get_file_content("tests/utils/helpers.ts", base_sha)
        assert "=> 2" in source.get_file_content("tests/utils/helpers.ts", head_sha)
        assert source.get_file_content("tests/missing.ts", head_sha) is None
        assert source.file_exists("tests/a.spec.ts", head_sha)
        assert not source.file_exists("tests/a.spec", head_sha)

    def test_lists_files_and_changes(self, git_repo):
        repo, base_sha, head_sha = git_repo
        source = GitRevisionSource(repo)

        assert source.list_all_files(head_sha) == [
            "tests/a.spec.ts",
            "tests/b.spec.ts",
            "tests/utils/helpers.ts",
        ]
        assert source.list_changed_files(base_sha, head_sha) == [
            ChangedFile("tests/b.spec.ts", FileChangeType.MODIFIED),
            ChangedFile("tests/utils/helpers.ts", FileChangeType.MODIFIED),
        ]

    def test_unknown_revision(self, git_repo):
        repo, _, _ = git_repo

        with pytest.raises(RevisionNotFoundError):
            GitRevisionSource(repo).resolve_revision("no-such-branch")

    def test_directory_is_not_reported_as_file(self, git_repo_factory):
        repo, _, head_sha = git_repo_factory(
            {"tests/pages/index.ts": "export const p = 1;\n"},
            {"tests/pages/index.ts": "export const p = 2;\n"},
        )
        source = GitRevisionSource(repo)

        assert not source.file_exists("tests/pages", head_sha)
        assert source.file_exists("tests/pages/index.ts", head_sha)

    def test_non_ascii_paths_are_not_quoted(self, git_repo_factory):
        repo, base_sha, head_sha = git_repo_factory(
            {"tests/café.spec.ts": "test('old', () => {});\n"},
            {"tests/café.spec.ts": "test('new', () => {});\n"},
        )
        source = GitRevisionSource(repo)

        assert source.list_all_files(head_sha) == ["tests/café.spec.ts"]
        assert source.list_changed_files(base_sha, head_sha) == [
            ChangedFile("tests/café.spec.ts", FileChangeType.MODIFIED)
        ]
        assert source.get_file_content("tests/café.spec.ts", head_sha) == (
            "test('new', () => {});\n"
        )
