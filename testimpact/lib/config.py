"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from testimpact.lib.test_blocks import MAX_BODY_LINES


class Settings(BaseSettings):
    """
    Analyzer settings loaded from environment variables and .env file.

    Every field can be overridden with a ``TESTIMPACT_`` prefixed variable,
    e.g. ``TESTIMPACT_MAX_BODY_LINES=1000``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TESTIMPACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(
        default=None,
        description="Optional path of a rotating JSON log file",
    )

    # Extraction settings
    max_body_lines: int = Field(
        default=MAX_BODY_LINES,
        ge=1,
        description="Maximum number of lines captured for one test body",
    )

    # Import resolution settings
    source_extensions: list[str] = Field(
        default_factory=lambda: [".ts", ".js", ".tsx", ".jsx"],
        description="Extensions probed when an import omits one",
    )
    index_basename: str = Field(
        default="index",
        description="Implicit file name probed inside an imported directory",
    )

    # Git settings
    git_executable: str = Field(default="git", description="Git binary to invoke")
    git_timeout: int = Field(
        default=60,
        description="Timeout in seconds for a single git command",
    )

    # Output settings
    runner_command: str = Field(
        default="npx playwright test",
        description="Command prefix used when rendering runnable commands",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings instance (cached for performance)

    Example:
        >>> settings = get_settings()
        >>> print(settings.max_body_lines)
        500
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
