"""CLI exit codes for consistent error reporting.

| Code | Meaning                    | Recommended Action                         |
|------|----------------------------|--------------------------------------------|
| 0    | Success                    | -                                          |
| 1    | General error              | Check logs                                 |
| 2    | Invalid arguments          | Check command syntax                       |
| 3    | Repository not found       | Check the --repo path                      |
| 30   | Configuration error        | Check the base/head revision names         |
"""

from testimpact.lib.git import NotAGitRepositoryError, RevisionNotFoundError


class ExitCode:
    """Standard exit codes for the testimpact CLI."""

    SUCCESS = 0
    """Command completed successfully."""

    ERROR = 1
    """General error occurred. Check logs for details."""

    INVALID_ARGS = 2
    """Invalid arguments provided. Check command syntax."""

    REPOSITORY_NOT_FOUND = 3
    """Repository not found. Check the repository path."""

    CONFIG_ERROR = 30
    """Configuration error, such as an unknown revision."""


def get_exit_code_description(code: int) -> str:
    """
    Get a human-readable description for an exit code.

    Args:
        code: Exit code number

    Returns:
        Description string
    """
    descriptions = {
        0: "Success",
        1: "General error - check logs",
        2: "Invalid arguments - check command syntax",
        3: "Repository not found - check repository path",
        30: "Configuration error - check revision names",
    }
    return descriptions.get(code, f"Unknown exit code: {code}")


def exit_code_for(error: Exception) -> int:
    """Map an exception raised during analysis to an exit code."""
    if isinstance(error, NotAGitRepositoryError):
        return ExitCode.REPOSITORY_NOT_FOUND
    if isinstance(error, RevisionNotFoundError):
        return ExitCode.CONFIG_ERROR
    return ExitCode.ERROR


__all__ = ["ExitCode", "get_exit_code_description", "exit_code_for"]
