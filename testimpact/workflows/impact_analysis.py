"""Test Impact Analysis Workflow.

Compares two revisions of a repository and reports which tests are
impacted: directly, when a test declaration itself changed, or
indirectly, when an unchanged test file imports a changed file.
"""

import time
from pathlib import Path

from testimpact.lib.config import Settings, get_settings
from testimpact.lib.git import CachedRevisionSource, GitRevisionSource, RevisionSource
from testimpact.lib.imports import extract_references, resolve_import_path
from testimpact.lib.logging import bind_context, clear_context, get_logger
from testimpact.lib.test_blocks import extract_declarations
from testimpact.lib.test_diff import diff_declarations
from testimpact.lib.test_files import filter_test_files, is_test_file
from testimpact.models.impact import (
    ChangedFile,
    FileChange,
    ImpactOrigin,
    TestChangeRecord,
    TestChangeType,
    TestDeclaration,
)
from testimpact.models.impact_report import ImpactAnalysisResult

logger = get_logger(__name__)


def analyze_test_file_changes(
    source: RevisionSource,
    base_revision: str,
    head_revision: str,
    file_path: str,
    max_body_lines: int | None = None,
) -> list[TestChangeRecord]:
    """
    Diff the declarations of one test file between two revisions.

    A file missing at base yields only added tests, a file missing at head
    only removed tests.

    Args:
        source: Revision source
        base_revision: Base revision
        head_revision: Head revision
        file_path: Test file path
        max_body_lines: Line cap for body capture

    Returns:
        All direct changes for the file as one batch
    """
    max_lines = max_body_lines or get_settings().max_body_lines

    base_content = source.get_file_content(file_path, base_revision)
    head_content = source.get_file_content(file_path, head_revision)

    base_tests = extract_declarations(base_content, max_lines)
    head_tests = extract_declarations(head_content, max_lines)

    return diff_declarations(base_tests, head_tests, file_path)


def find_impacting_import(
    source: RevisionSource,
    test_file: str,
    content: str,
    changed_paths: set[str],
    revision: str,
    settings: Settings | None = None,
) -> str | None:
    """
    Find the first import of a test file that resolves to a changed path.

    Args:
        source: Revision source used for existence checks
        test_file: Importing test file
        content: Test file text at the revision
        changed_paths: Changed non-test file paths
        revision: Revision imports are resolved against
        settings: Resolution settings (extensions, index name)

    Returns:
        The changed path, or None if no import matches
    """
    settings = settings or get_settings()

    for reference in extract_references(content):
        resolved = resolve_import_path(
            reference.specifier,
            test_file,
            revision,
            source,
            extensions=settings.source_extensions,
            index_basename=settings.index_basename,
        )
        if resolved and resolved in changed_paths:
            return resolved

    return None


def resolve_indirect_impact(
    source: RevisionSource,
    changed_non_test_files: list[str],
    all_test_files: list[str],
    changed_test_files: list[str],
    head_revision: str,
    settings: Settings | None = None,
) -> list[TestChangeRecord]:
    """
    Attribute every test of an unchanged test file importing a changed file.

    Only the first matching import of each file is reported. Files that
    cannot be read or scanned are skipped.

    Args:
        source: Revision source
        changed_non_test_files: Paths of changed files that are not tests
        all_test_files: Test files present at head
        changed_test_files: Test files already diffed directly
        head_revision: Head revision
        settings: Analyzer settings

    Returns:
        Modified/indirect records grouped by test file
    """
    settings = settings or get_settings()
    changed_paths = set(changed_non_test_files)
    already_changed = set(changed_test_files)
    impacts: list[TestChangeRecord] = []

    if not changed_paths:
        return impacts

    for test_file in all_test_files:
        if test_file in already_changed:
            continue

        try:
            content = source.get_file_content(test_file, head_revision)
            if content is None:
                logger.debug("indirect_scan_skipped", file=test_file, reason="content_missing")
                continue

            impacted_by = find_impacting_import(
                source, test_file, content, changed_paths, head_revision, settings
            )
            if impacted_by is None:
                continue

            declarations = extract_declarations(content, settings.max_body_lines)
        except Exception as e:
            logger.warning("indirect_scan_failed", file=test_file, error=str(e))
            continue

        logger.debug(
            "indirect_impact_found",
            file=test_file,
            impacted_by=impacted_by,
            tests=len(declarations),
        )
        impacts.extend(
            TestChangeRecord(
                change_type=TestChangeType.MODIFIED,
                test_name=declaration.name,
                file_path=test_file,
                line_number=declaration.start_line,
                kind=declaration.kind,
                impact_origin=ImpactOrigin.INDIRECT,
                impacted_by=impacted_by,
            )
            for declaration in declarations
        )

    return impacts


def build_impact_result(
    base_revision: str,
    head_revision: str,
    file_changes: list[FileChange],
    indirect_impacts: list[TestChangeRecord],
) -> ImpactAnalysisResult:
    """
    Assemble the final ImpactAnalysisResult.

    Args:
        base_revision: Base revision as given by the caller
        head_revision: Head revision as given by the caller
        file_changes: Per-file summaries carrying direct test changes
        indirect_impacts: Records from resolve_indirect_impact

    Returns:
        Complete result; counters are derived from the lists
    """
    direct_impacts = [change for fc in file_changes for change in fc.test_changes]

    return ImpactAnalysisResult(
        base_revision=base_revision,
        head_revision=head_revision,
        changed_files=file_changes,
        directly_impacted_tests=direct_impacts,
        indirectly_impacted_tests=list(indirect_impacts),
    )


class TestImpactAnalyzer:
    """Analyzes which tests are impacted between two revisions.

    The revision source is injected and wrapped in a CachedRevisionSource
    for the lifetime of the analyzer.
    """

    def __init__(self, source: RevisionSource, settings: Settings | None = None):
        self.settings = settings or get_settings()
        if not isinstance(source, CachedRevisionSource):
            source = CachedRevisionSource(source)
        self.source = source

    def _classify(
        self,
        base_revision: str,
        head_revision: str,
        changed_files: list[ChangedFile],
    ) -> tuple[list[FileChange], list[str], list[str]]:
        """Split changed files into test and non-test files, diffing tests."""
        file_changes: list[FileChange] = []
        changed_test_files: list[str] = []
        changed_non_test_files: list[str] = []

        for changed in changed_files:
            file_change = FileChange(
                file_path=changed.path,
                change_type=changed.change_type,
                is_test_file=is_test_file(changed.path),
            )

            if file_change.is_test_file:
                changed_test_files.append(changed.path)
                try:
                    file_change.test_changes = analyze_test_file_changes(
                        self.source,
                        base_revision,
                        head_revision,
                        changed.path,
                        self.settings.max_body_lines,
                    )
                except Exception as e:
                    logger.warning("test_file_diff_failed", file=changed.path, error=str(e))
                else:
                    logger.debug(
                        "test_file_diffed",
                        file=changed.path,
                        changes=len(file_change.test_changes),
                    )
            else:
                changed_non_test_files.append(changed.path)

            file_changes.append(file_change)

        return file_changes, changed_test_files, changed_non_test_files

    def analyze(self, base_revision: str, head_revision: str) -> ImpactAnalysisResult:
        """
        Analyze the impact between two revisions.

        Both revisions are verified before any other query, so an invalid
        pair raises RevisionNotFoundError without a partial result.

        Args:
            base_revision: Base commit, branch or tag
            head_revision: Head commit, branch or tag

        Returns:
            Complete ImpactAnalysisResult
        """
        start_time = time.time()
        bind_context(base=base_revision, head=head_revision)

        try:
            self.source.resolve_revision(base_revision)
            self.source.resolve_revision(head_revision)

            logger.info("impact_analysis_started")

            changed_files = self.source.list_changed_files(base_revision, head_revision)
            file_changes, changed_tests, changed_non_tests = self._classify(
                base_revision, head_revision, changed_files
            )

            indirect: list[TestChangeRecord] = []
            if changed_non_tests:
                all_test_files = filter_test_files(self.source.list_all_files(head_revision))
                indirect = resolve_indirect_impact(
                    self.source,
                    changed_non_tests,
                    all_test_files,
                    changed_tests,
                    head_revision,
                    self.settings,
                )

            result = build_impact_result(base_revision, head_revision, file_changes, indirect)

            summary = result.summary
            logger.info(
                "impact_analysis_completed",
                files_changed=summary.total_files_changed,
                test_files_changed=summary.test_files_changed,
                direct=len(result.directly_impacted_tests),
                indirect=summary.tests_indirectly_impacted,
                duration_seconds=round(time.time() - start_time, 3),
            )
            return result
        finally:
            clear_context()

    def list_tests(self, revision: str) -> dict[str, list[TestDeclaration]]:
        """
        List the declarations of every test file at a revision.

        Args:
            revision: Commit, branch or tag

        Returns:
            Mapping of test file path to its declarations, in tree order
        """
        self.source.resolve_revision(revision)

        listing: dict[str, list[TestDeclaration]] = {}
        for test_file in filter_test_files(self.source.list_all_files(revision)):
            content = self.source.get_file_content(test_file, revision)
            listing[test_file] = extract_declarations(content, self.settings.max_body_lines)

        logger.info("tests_listed", revision=revision, files=len(listing))
        return listing


def run_impact_analysis(
    repo_path: str | Path,
    base_revision: str,
    head_revision: str,
) -> ImpactAnalysisResult:
    """
    Run full impact analysis on a git repository.

    Args:
        repo_path: Path to the git work tree
        base_revision: Base commit, branch or tag
        head_revision: Head commit, branch or tag

    Returns:
        Complete ImpactAnalysisResult
    """
    analyzer = TestImpactAnalyzer(GitRevisionSource(repo_path))
    return analyzer.analyze(base_revision, head_revision)


__all__ = [
    "TestImpactAnalyzer",
    "analyze_test_file_changes",
    "find_impacting_import",
    "resolve_indirect_impact",
    "build_impact_result",
    "run_impact_analysis",
]
