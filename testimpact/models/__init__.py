"""Data models for testimpact."""

from testimpact.models.impact import (
    ChangedFile,
    FileChange,
    FileChangeType,
    ImpactOrigin,
    ImportReference,
    TestChangeRecord,
    TestChangeType,
    TestDeclaration,
    TestKind,
)
from testimpact.models.impact_report import ImpactAnalysisResult, ImpactSummary

__all__ = [
    "TestKind",
    "TestChangeType",
    "ImpactOrigin",
    "FileChangeType",
    "TestDeclaration",
    "ImportReference",
    "ChangedFile",
    "TestChangeRecord",
    "FileChange",
    "ImpactSummary",
    "ImpactAnalysisResult",
]
