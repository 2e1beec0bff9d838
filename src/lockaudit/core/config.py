"""Configuration management for the auditor.

Loads application settings from environment variables and output settings
from an optional ``audit.toml`` file plus command-line overrides, using
Pydantic models for validation.

Provides:
- Config: Application settings (index, advisory database, cache)
- OutputFormat / DenyOption: Enums for output options
- OutputConfig: How a report is presented and what counts as failure
- load_config: Factory function to create Config instance
- load_output_config: Build OutputConfig from audit.toml and overrides
"""

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lockaudit.core.errors import ConfigError

DEFAULT_INDEX_URL = "https://index.crates.io"
DEFAULT_ADVISORY_DB_URL = (
    "https://github.com/rustsec/advisory-db/archive/refs/heads/main.tar.gz"
)


class OutputFormat(str, Enum):
    TERMINAL = "terminal"
    JSON = "json"


class DenyOption(str, Enum):
    """Warning categories that can be promoted to failures.

    WARNINGS: Every kind of warning
    UNMAINTAINED / UNSOUND / YANKED: That single kind
    """

    WARNINGS = "warnings"
    UNMAINTAINED = "unmaintained"
    UNSOUND = "unsound"
    YANKED = "yanked"


class OutputConfig(BaseModel):
    """Report presentation settings, fixed for one run.

    Attributes:
        format: Human-readable terminal output or JSON
        deny: Warning categories treated as failures
        show_tree: Whether to print inverse dependency trees (None means yes)
        quiet: Suppress informational status lines
        color: Force ANSI colors on/off (None means detect from the terminal)
    """

    model_config = ConfigDict(frozen=True)

    format: OutputFormat = OutputFormat.TERMINAL
    deny: frozenset[DenyOption] = frozenset()
    show_tree: bool | None = None
    quiet: bool = False
    color: bool | None = None

    def is_quiet(self) -> bool:
        return self.quiet or self.format == OutputFormat.JSON


class Config(BaseModel):
    """Application configuration loaded from environment.

    Attributes:
        index_url: Base URL of the crates.io sparse index
        advisory_db_url: Archive URL of the advisory database
        cache_dir: Directory for the index cache, database copy and lock file
        fetch_retries: Attempts per network fetch
        fetch_timeout: Seconds per network fetch attempt
    """

    index_url: str = Field(
        default_factory=lambda: os.getenv("LOCKAUDIT_INDEX_URL", DEFAULT_INDEX_URL)
    )
    advisory_db_url: str = Field(
        default_factory=lambda: os.getenv(
            "LOCKAUDIT_ADVISORY_DB_URL", DEFAULT_ADVISORY_DB_URL
        )
    )
    cache_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("LOCKAUDIT_CACHE_DIR", "~/.cache/lockaudit")
        ).expanduser()
    )

    fetch_retries: int = Field(default=3)
    fetch_timeout: float = Field(default=30.0)

    @property
    def lock_path(self) -> Path:
        return self.cache_dir / ".package-cache.lock"


def load_config() -> Config:
    """Load configuration from environment.

    Returns:
        Populated Config instance
    """
    return Config()


def load_output_config(path: str | Path | None = None, **overrides: Any) -> OutputConfig:
    """Build the output configuration for a run.

    Reads the ``[output]`` table of an ``audit.toml`` file when a path is
    given, then applies overrides whose value is not None.

    Args:
        path: Optional path to audit.toml
        **overrides: Field values from the command line

    Returns:
        Validated OutputConfig

    Raises:
        ConfigError: If the file cannot be read or a value is invalid
    """
    values: dict[str, Any] = {}

    if path is not None:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        output = data.get("output", {})
        if not isinstance(output, dict):
            raise ConfigError(f"[output] in {path} must be a table")
        values.update(output)

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return OutputConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"invalid output configuration: {e}") from e
