"""Core library modules for testimpact."""

from testimpact.lib.config import Settings, get_settings
from testimpact.lib.git import (
    CachedRevisionSource,
    GitError,
    GitRevisionSource,
    NotAGitRepositoryError,
    RevisionNotFoundError,
    RevisionSource,
)
from testimpact.lib.logging import get_logger

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "RevisionSource",
    "GitRevisionSource",
    "CachedRevisionSource",
    "GitError",
    "NotAGitRepositoryError",
    "RevisionNotFoundError",
]
