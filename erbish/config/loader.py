"""
Handles loading and merging of configuration from TOML files and CLI overrides.
"""
import toml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import fields as dataclass_fields
import structlog

from erbish.exceptions import ConfigError
from erbish.logging_setup import LOG_FORMATS

from .settings import RenderConfig

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".erbish.toml", "erbish.toml", "pyproject.toml"]

CONFIG_KEY_TO_RENDERCONFIG_ATTR_MAP: Dict[str, str] = {
    "views": "views_dir",
    "views_dir": "views_dir",
    "extension": "template_extension",
    "template_extension": "template_extension",
    "layout": "default_layout",
    "default_layout": "default_layout",
    "cache_templates": "cache_templates",
    "encoding": "encoding",
    "log_level": "log_level",
    "log_format": "log_format",
    "vars": "user_vars",
}

_EXPECTED_TYPES: Dict[str, tuple] = {
    "views_dir": (str,),
    "template_extension": (str,),
    "default_layout": (str,),
    "cache_templates": (bool,),
    "encoding": (str,),
    "log_level": (str,),
    "log_format": (str,),
    "user_vars": (dict,),
}

def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file(): return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Could not read config file {file_path}: {e}") from e
    return data.get("tool", {}).get("erbish", {}) if file_path.name == "pyproject.toml" else data

def load_config_file_data(search_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Returns settings from the first project config file found in search_dir (default: cwd)."""
    base = search_dir or Path.cwd()
    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = base / filename
        if candidate.is_file():
            settings = _load_toml_file_data(candidate)
            if settings:
                log.info("loading_project_local_config", path=str(candidate))
                settings = dict(settings)
                settings["_config_dir"] = str(candidate.parent)
                return settings
    log.debug("no_configuration_files_loaded", search_dir=str(base))
    return {}

def build_render_config(file_data: Dict[str, Any], overrides: Optional[Dict[str, Any]] = None) -> RenderConfig:
    """
    Merges file settings and explicit overrides into a RenderConfig.
    Overrides are keyed by RenderConfig attribute name; None values are ignored.
    A relative views_dir from a config file is taken relative to that file's directory.
    """
    values: Dict[str, Any] = {}
    for key, value in file_data.items():
        if key.startswith("_"):
            continue
        attr = CONFIG_KEY_TO_RENDERCONFIG_ATTR_MAP.get(key)
        if attr is None:
            log.warning("unknown_config_key_ignored", key=key)
            continue
        expected = _EXPECTED_TYPES[attr]
        if not isinstance(value, expected):
            raise ConfigError(
                f"Config key '{key}' must be of type {expected[0].__name__}, got {type(value).__name__}"
            )
        if attr == "log_format" and value not in LOG_FORMATS:
            raise ConfigError(f"Config key '{key}' must be one of {', '.join(LOG_FORMATS)}, got '{value}'")
        values[attr] = value

    config_dir = file_data.get("_config_dir")
    if config_dir and "views_dir" in values and not Path(values["views_dir"]).is_absolute():
        values["views_dir"] = str(Path(config_dir) / values["views_dir"])

    valid_attrs = {f.name for f in dataclass_fields(RenderConfig)}
    for attr, value in (overrides or {}).items():
        if value is None:
            continue
        if attr not in valid_attrs:
            raise ConfigError(f"Unknown configuration option '{attr}'")
        if attr == "user_vars":
            merged = dict(values.get("user_vars", {}))
            merged.update(value)
            values["user_vars"] = merged
        else:
            values[attr] = value

    config = RenderConfig(**values)
    log.debug("render_config_built", views_dir=str(config.views_dir), default_layout=config.default_layout)
    return config
