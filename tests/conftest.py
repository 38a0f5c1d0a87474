"""Pytest configuration and fixtures."""

import subprocess
from pathlib import Path

import pytest
from dotenv import load_dotenv

from testimpact.lib.git import RevisionNotFoundError
from testimpact.models.impact import ChangedFile, FileChangeType

# Load .env file before running tests
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path, override=True)


class FakeRevisionSource:
    """In-memory revision source.

    ``revisions`` maps a revision name to a ``{path: content}`` tree.
    Changed files are derived by comparing the two trees unless
    ``changed_files`` is given explicitly.
    """

    def __init__(
        self,
        revisions: dict[str, dict[str, str]],
        changed_files: list[ChangedFile] | None = None,
        failing_paths: set[str] | None = None,
    ):
        self.revisions = revisions
        self.changed_files = changed_files
        self.failing_paths = failing_paths or set()
        self.content_calls: list[tuple[str, str]] = []

    def _tree(self, revision: str) -> dict[str, str]:
        if revision not in self.revisions:
            raise RevisionNotFoundError(f"Unknown revision: {revision}", revision=revision)
        return self.revisions[revision]

    def resolve_revision(self, revision: str) -> str:
        self._tree(revision)
        return revision

    def get_file_content(self, path: str, revision: str) -> str | None:
        self.content_calls.append((path, revision))
        if path in self.failing_paths:
            raise OSError(f"cannot read {path}")
        return self._tree(revision).get(path)

    def file_exists(self, path: str, revision: str) -> bool:
        return path in self._tree(revision)

    def list_all_files(self, revision: str) -> list[str]:
        return sorted(self._tree(revision))

    def list_changed_files(self, base_revision: str, head_revision: str) -> list[ChangedFile]:
        if self.changed_files is not None:
            return list(self.changed_files)

        base = self._tree(base_revision)
        head = self._tree(head_revision)
        changes: list[ChangedFile] = []
        for path in sorted(set(base) | set(head)):
            if path not in base:
                changes.append(ChangedFile(path, FileChangeType.ADDED))
            elif path not in head:
                changes.append(ChangedFile(path, FileChangeType.DELETED))
            elif base[path] != head[path]:
                changes.append(ChangedFile(path, FileChangeType.MODIFIED))
        return changes


@pytest.fixture
def fake_source_factory():
    """Build FakeRevisionSource instances from base/head trees."""

    def factory(base: dict[str, str], head: dict[str, str], **kwargs) -> FakeRevisionSource:
        return FakeRevisionSource({"base": base, "head": head}, **kwargs)

    return factory


@pytest.fixture
def sessions_spec_base() -> str:
    """A Playwright spec file with one suite holding two tests."""
    return """import { test, expect } from '@playwright/test';
import { login } from '../utils/helpers';

test.describe('Sessions', () => {
  test('List sessions', async ({ page }) => {
    await login(page);
    await expect(page.locator('.session')).toHaveCount(3);
  });

  test('Delete session', async ({ page }) => {
    await page.click('#delete');
  });
});
"""


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo_factory(tmp_path):
    """Build a git repository from a base tree and a head tree.

    Trees map paths to content; a ``None`` content deletes the path in head.
    Returns a function producing (repo_path, base_sha, head_sha). Skips when
    git is not installed.
    """
    try:
        subprocess.run(["git", "--version"], capture_output=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        pytest.skip("git is not available")

    def write_tree(repo: Path, files: dict[str, str | None]) -> None:
        for relative, content in files.items():
            path = repo / relative
            if content is None:
                path.unlink()
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

    def factory(
        base: dict[str, str], head: dict[str, str | None]
    ) -> tuple[Path, str, str]:
        repo = tmp_path / "repo"
        repo.mkdir()
        _git(repo, "init", "-q")
        _git(repo, "config", "user.email", "ci@example.com")
        _git(repo, "config", "user.name", "CI")
        _git(repo, "config", "commit.gpgsign", "false")

        write_tree(repo, base)
        _git(repo, "add", "-A")
        _git(repo, "commit", "-q", "-m", "base")
        base_sha = _git(repo, "rev-parse", "HEAD")

        write_tree(repo, head)
        _git(repo, "add", "-A")
        _git(repo, "commit", "-q", "-m", "head")
        head_sha = _git(repo, "rev-parse", "HEAD")

        return repo, base_sha, head_sha

    return factory


@pytest.fixture
def git_repo(git_repo_factory):
    """A repository where a helper and one spec change between two commits.

    Returns a tuple of (repo_path, base_sha, head_sha).
    """
    return git_repo_factory(
        {
            "tests/utils/helpers.ts": "export const h = () => 1;\n",
            "tests/a.spec.ts": (
                "import { h } from './utils/helpers';\n"
                "\n"
                "test('uses helper', () => {\n"
                "  expect(h()).toBe(1);\n"
                "});\n"
            ),
            "tests/b.spec.ts": "test('old test', () => {\n  expect(1).toBe(1);\n});\n",
        },
        {
            "tests/utils/helpers.ts": "export const h = () => 2;\n",
            "tests/b.spec.ts": "test('new test', () => {\n  expect(2).toBe(2);\n});\n",
        },
    )
