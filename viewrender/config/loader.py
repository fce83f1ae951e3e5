# viewrender/config/loader.py
"""
Loads renderer settings from TOML files and maps them onto RenderConfig.
"""
import toml
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import fields as dataclass_fields
import structlog

from viewrender.exceptions import ConfigError

from .settings import RenderConfig

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".viewrender.toml", "viewrender.toml", "pyproject.toml"]

CONFIG_KEY_TO_RENDERCONFIG_ATTR_MAP: Dict[str, str] = {
    "directory": "directory",
    "targets": "targets",
    "extensions": "targets",
    "exclude": "exclude",
    "cache": "cache",
    "binary": "binary",
    "max_size": "max_size",
    "sum_max_size": "sum_max_size",
    "duplicate_policy": "duplicate_policy",
    "max_depth": "max_depth",
    "max_attempts": "max_attempts",
}

def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file(): return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"could not read config file {file_path}: {e}") from e
    return data.get("tool", {}).get("viewrender", {}) if file_path.name == "pyproject.toml" else data

def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    base = start_dir or Path.cwd()
    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = base / filename
        if candidate.is_file():
            if candidate.name == "pyproject.toml" and not _load_toml_file_data(candidate):
                continue
            return candidate
    return None

def load_settings(config_file: Optional[Path] = None, profile: Optional[str] = None) -> Dict[str, Any]:
    """Returns RenderConfig keyword arguments from a config file and optional profile."""
    path = config_file or find_config_file()
    if path is None:
        log.debug("no_configuration_file_found")
        return {}
    raw = _load_toml_file_data(path)
    log.info("loaded_project_config", path=str(path), keys=sorted(raw))

    settings = _map_keys(raw)
    if profile:
        profile_values = raw.get("profiles", {}).get(profile)
        if not isinstance(profile_values, dict):
            raise ConfigError(f"profile '{profile}' not found in {path}")
        log.info("applying_profile_settings", profile=profile)
        settings.update(_map_keys(profile_values))
    if "directory" in settings and not Path(settings["directory"]).is_absolute():
        settings["directory"] = path.parent / settings["directory"]
    return settings

def _map_keys(values: Dict[str, Any]) -> Dict[str, Any]:
    mapped: Dict[str, Any] = {}
    for key, value in values.items():
        attr = CONFIG_KEY_TO_RENDERCONFIG_ATTR_MAP.get(key)
        if attr is None:
            if key != "profiles":
                log.warning("unknown_config_key_ignored", key=key)
            continue
        mapped[attr] = value
    return mapped

def build_config(settings: Dict[str, Any], **overrides: Any) -> RenderConfig:
    # layers non-None overrides (e.g. command line values) over file settings.
    valid = {f.name for f in dataclass_fields(RenderConfig)}
    merged = {k: v for k, v in settings.items() if k in valid}
    merged.update({k: v for k, v in overrides.items() if k in valid and v is not None})
    try:
        return RenderConfig(**merged)
    except TypeError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
