"""ImpactAnalysisResult model.

Top-level result of comparing two revisions. Produces the JSON
document printed by ``testimpact analyze --format json``.
"""

from dataclasses import dataclass, field
from typing import Any

from testimpact.models.impact import (
    FileChange,
    ImpactOrigin,
    TestChangeRecord,
    TestChangeType,
)


@dataclass(frozen=True)
class ImpactSummary:
    """Aggregate counters for one analysis run."""

    total_files_changed: int = 0
    test_files_changed: int = 0
    tests_added: int = 0
    tests_removed: int = 0
    tests_modified: int = 0
    tests_indirectly_impacted: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_files_changed": self.total_files_changed,
            "test_files_changed": self.test_files_changed,
            "tests_added": self.tests_added,
            "tests_removed": self.tests_removed,
            "tests_modified": self.tests_modified,
            "tests_indirectly_impacted": self.tests_indirectly_impacted,
        }


@dataclass
class ImpactAnalysisResult:
    """Tests impacted by the changes between two revisions.

    Attributes:
        base_revision: Revision the comparison starts from
        head_revision: Revision the comparison ends at
        changed_files: Per-file change summaries, in version control order
        directly_impacted_tests: Tests whose own declaration changed
        indirectly_impacted_tests: Tests in files importing a changed file
    """

    base_revision: str
    head_revision: str
    changed_files: list[FileChange] = field(default_factory=list)
    directly_impacted_tests: list[TestChangeRecord] = field(default_factory=list)
    indirectly_impacted_tests: list[TestChangeRecord] = field(default_factory=list)

    @property
    def summary(self) -> ImpactSummary:
        """Compute summary statistics."""
        direct = [
            t for t in self.directly_impacted_tests if t.impact_origin == ImpactOrigin.DIRECT
        ]
        return ImpactSummary(
            total_files_changed=len(self.changed_files),
            test_files_changed=sum(1 for f in self.changed_files if f.is_test_file),
            tests_added=sum(1 for t in direct if t.change_type == TestChangeType.ADDED),
            tests_removed=sum(1 for t in direct if t.change_type == TestChangeType.REMOVED),
            tests_modified=sum(1 for t in direct if t.change_type == TestChangeType.MODIFIED),
            tests_indirectly_impacted=sum(
                1
                for t in self.indirectly_impacted_tests
                if t.impact_origin == ImpactOrigin.INDIRECT
            ),
        )

    @property
    def all_impacted_tests(self) -> list[TestChangeRecord]:
        """Direct impacts followed by indirect impacts."""
        return [*self.directly_impacted_tests, *self.indirectly_impacted_tests]

    def has_impacted_tests(self) -> bool:
        """Check whether any test needs to run."""
        return bool(self.directly_impacted_tests or self.indirectly_impacted_tests)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "base_commit": self.base_revision,
            "head_commit": self.head_revision,
            "changed_files": [f.to_dict() for f in self.changed_files],
            "directly_impacted_tests": [t.to_dict() for t in self.directly_impacted_tests],
            "indirectly_impacted_tests": [t.to_dict() for t in self.indirectly_impacted_tests],
            "summary": self.summary.to_dict(),
        }
