# erbish/core/templating/context_builder.py
"""
Builds the context dictionary passed to templates from config vars,
an optional JSON/TOML context file and command-line variables.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional

import toml
import structlog

from erbish.config.settings import RenderConfig
from erbish.exceptions import ConfigError

log = structlog.get_logger(__name__)

def load_context_file(path: Path) -> Dict[str, Any]:
    """Reads a context mapping from a .json or .toml file."""
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read context file {path}: {e}") from e
    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix == ".toml":
            data = toml.loads(text)
        else:
            raise ConfigError(f"Unsupported context file type '{suffix}' (use .json or .toml)")
    except (json.JSONDecodeError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Could not parse context file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Context file {path} must contain an object at the top level")
    log.debug("context_file_loaded", path=str(path), keys=list(data.keys()))
    return data

def build_template_context(
    config: RenderConfig,
    context_file_data: Optional[Dict[str, Any]] = None,
    cli_vars: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Merges sources into one per-request context; later sources win: config vars, context file, cli vars."""
    context: Dict[str, Any] = {}
    context.update(config.user_vars or {})
    context.update(context_file_data or {})
    context.update(cli_vars or {})
    log.info("template_context_prepared", keys=sorted(context.keys()))
    return context
