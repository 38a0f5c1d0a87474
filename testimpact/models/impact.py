"""Test impact data models.

Defines the entities exchanged between extraction, diffing and
import resolution: test declarations, import references, per-file
changes and the per-test change records.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TestKind(str, Enum):
    """Kind of a declaration found in a test file."""

    TEST = "test"  # test(), test.only(), test.skip()
    DESCRIBE = "describe"  # test.describe() and its variants


class TestChangeType(str, Enum):
    """How a single test changed between two revisions."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class ImpactOrigin(str, Enum):
    """Whether a test changed itself or through an import."""

    DIRECT = "direct"
    INDIRECT = "indirect"


class FileChangeType(str, Enum):
    """Path-level change reported by version control."""

    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"


@dataclass(frozen=True)
class TestDeclaration:
    """A test or suite declaration extracted from file text.

    Attributes:
        name: Declared title, as written in the source
        kind: Leaf test or describe block
        start_line: 1-based line of the declaration
        body: Text from the declaration line through its closing brace
    """

    name: str
    kind: TestKind
    start_line: int
    body: str

    @property
    def key(self) -> tuple[str, TestKind]:
        """Identity used to match declarations across revisions."""
        return (self.name, self.kind)


@dataclass(frozen=True)
class ImportReference:
    """A module specifier found in file text and the line it starts on."""

    specifier: str
    line: int


@dataclass(frozen=True)
class ChangedFile:
    """A path changed between two revisions (new path for renames)."""

    path: str
    change_type: FileChangeType


@dataclass(frozen=True)
class TestChangeRecord:
    """Represents one impacted test.

    Attributes:
        change_type: added, removed or modified
        test_name: Declared title of the test or suite
        file_path: Test file containing the declaration
        line_number: Line in head (base for removed tests)
        kind: Leaf test or describe block
        impact_origin: direct or indirect
        impacted_by: Changed file whose import caused an indirect impact
    """

    change_type: TestChangeType
    test_name: str
    file_path: str
    line_number: int
    kind: TestKind
    impact_origin: ImpactOrigin = ImpactOrigin.DIRECT
    impacted_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "type": self.change_type.value,
            "test_name": self.test_name,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "change_kind": self.kind.value,
            "impact_type": self.impact_origin.value,
        }
        if self.impacted_by:
            result["impacted_by"] = self.impacted_by
        return result


@dataclass
class FileChange:
    """Per-file change summary.

    Attributes:
        file_path: Path relative to the repository root
        change_type: Path-level change type
        is_test_file: Whether the path matches the test file patterns
        test_changes: Direct test changes (test files only)
    """

    file_path: str
    change_type: FileChangeType
    is_test_file: bool
    test_changes: list[TestChangeRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "file_path": self.file_path,
            "change_type": self.change_type.value,
            "is_test_file": self.is_test_file,
        }
        if self.is_test_file:
            result["test_changes"] = [change.to_dict() for change in self.test_changes]
        return result
