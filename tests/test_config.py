"""Tests for application and output configuration."""

from pathlib import Path

import pytest

from lockaudit.core.config import (
    DEFAULT_INDEX_URL,
    Config,
    DenyOption,
    OutputFormat,
    load_config,
    load_output_config,
)
from lockaudit.core.errors import ConfigError


def test_config_defaults(monkeypatch):
    for name in ("LOCKAUDIT_INDEX_URL", "LOCKAUDIT_ADVISORY_DB_URL", "LOCKAUDIT_CACHE_DIR"):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config.index_url == DEFAULT_INDEX_URL
    assert config.cache_dir == Path("~/.cache/lockaudit").expanduser()
    assert config.lock_path.name == ".package-cache.lock"
    assert config.fetch_retries == 3


def test_config_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("LOCKAUDIT_INDEX_URL", "http://localhost:8000/index")
    monkeypatch.setenv("LOCKAUDIT_CACHE_DIR", str(tmp_path))

    config = Config()

    assert config.index_url == "http://localhost:8000/index"
    assert config.lock_path == tmp_path / ".package-cache.lock"


def test_output_config_defaults():
    config = load_output_config()

    assert config.format == OutputFormat.TERMINAL
    assert config.deny == frozenset()
    assert config.show_tree is None
    assert not config.is_quiet()


def test_output_config_from_file(tmp_path):
    path = tmp_path / "audit.toml"
    path.write_text('[output]\nformat = "json"\ndeny = ["yanked"]\nshow_tree = false\n')

    config = load_output_config(path)

    assert config.format == OutputFormat.JSON
    assert config.deny == frozenset({DenyOption.YANKED})
    assert config.show_tree is False
    assert config.is_quiet()


def test_overrides_win_over_file(tmp_path):
    path = tmp_path / "audit.toml"
    path.write_text('[output]\nformat = "json"\nquiet = true\n')

    config = load_output_config(path, format="terminal", quiet=None)

    assert config.format == OutputFormat.TERMINAL
    assert config.quiet is True


def test_output_config_is_frozen():
    config = load_output_config()

    with pytest.raises(Exception):
        config.quiet = True


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read config"):
        load_output_config(tmp_path / "audit.toml")


def test_output_must_be_a_table(tmp_path):
    path = tmp_path / "audit.toml"
    path.write_text('output = "json"\n')

    with pytest.raises(ConfigError, match="must be a table"):
        load_output_config(path)


def test_invalid_output_value():
    with pytest.raises(ConfigError, match="invalid output configuration"):
        load_output_config(format="xml")
