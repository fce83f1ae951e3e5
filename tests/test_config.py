"""
Tests for RenderConfig validation and the TOML settings loader.
"""
import re

import pytest
from pathlib import Path

from viewrender.config.loader import build_config, find_config_file, load_settings
from viewrender.config.settings import DEFAULT_MAX_DEPTH, DuplicatePolicy, RenderConfig
from viewrender.exceptions import ConfigError


@pytest.fixture
def project_toml(tmp_path: Path) -> Path:
    config_file = tmp_path / ".viewrender.toml"
    config_file.write_text(
        """
directory = "views"
extensions = [".html"]
cache = true
unknown_key = 1

[profiles.dev]
cache = false
max_depth = 4
duplicate_policy = "reject"
"""
    )
    return config_file


def test_defaults():
    config = RenderConfig()
    assert config.directory == Path(".")
    assert config.targets == []
    assert config.max_depth == DEFAULT_MAX_DEPTH
    assert config.duplicate_policy is DuplicatePolicy.OVERWRITE
    assert config.exclude_pattern() is None


def test_string_values_are_coerced():
    config = RenderConfig(directory="views", duplicate_policy="REJECT")
    assert config.directory == Path("views")
    assert config.duplicate_policy is DuplicatePolicy.REJECT


def test_unknown_policy_falls_back_to_overwrite():
    assert DuplicatePolicy.from_string("sometimes") is DuplicatePolicy.OVERWRITE


@pytest.mark.parametrize("kwargs", [{"max_size": -1}, {"sum_max_size": -5}, {"max_depth": 0}, {"max_attempts": 0}])
def test_invalid_limits(kwargs):
    with pytest.raises(ConfigError):
        RenderConfig(**kwargs)


def test_exclude_pattern_compiles():
    assert RenderConfig(exclude=r"//=\s*(\S+)").exclude_pattern() == re.compile(r"//=\s*(\S+)")
    with pytest.raises(ConfigError, match="invalid exclude pattern"):
        RenderConfig(exclude="(unclosed").exclude_pattern()


def test_load_settings_maps_keys(project_toml: Path):
    settings = load_settings(project_toml)
    assert settings["targets"] == [".html"]
    assert settings["cache"] is True
    assert settings["directory"] == project_toml.parent / "views"
    assert "unknown_key" not in settings


def test_profile_overrides_globals(project_toml: Path):
    settings = load_settings(project_toml, profile="dev")
    assert settings["cache"] is False
    assert settings["max_depth"] == 4
    config = build_config(settings)
    assert config.duplicate_policy is DuplicatePolicy.REJECT


def test_missing_profile(project_toml: Path):
    with pytest.raises(ConfigError, match="profile 'prod' not found"):
        load_settings(project_toml, profile="prod")


def test_command_line_overrides_win(project_toml: Path):
    config = build_config(load_settings(project_toml), cache=False, max_size=None, targets=[".txt"])
    assert config.cache is False
    assert config.max_size == 0
    assert config.targets == [".txt"]


def test_pyproject_tool_table(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n')
    assert find_config_file(tmp_path) is None

    (tmp_path / "pyproject.toml").write_text('[tool.viewrender]\nbinary = true\n')
    found = find_config_file(tmp_path)
    assert found == tmp_path / "pyproject.toml"
    assert load_settings(found) == {"binary": True}


def test_broken_toml(tmp_path: Path):
    bad = tmp_path / "viewrender.toml"
    bad.write_text("cache = = true")
    with pytest.raises(ConfigError, match="could not read config file"):
        load_settings(bad)
