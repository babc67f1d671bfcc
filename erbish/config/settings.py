from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

log = structlog.get_logger(__name__)

DEFAULT_VIEWS_DIR = "views"
DEFAULT_TEMPLATE_EXTENSION = ".erb"
DEFAULT_LAYOUT_NAME = "layout"
DEFAULT_ENCODING = "utf-8"
DEFAULT_LOG_LEVEL = "warning"
DEFAULT_LOG_FORMAT = "console"

@dataclass
class RenderConfig:
    # holds all configuration parameters for a single run.
    views_dir: Path = field(default_factory=lambda: Path(DEFAULT_VIEWS_DIR))
    template_extension: str = DEFAULT_TEMPLATE_EXTENSION
    default_layout: Optional[str] = DEFAULT_LAYOUT_NAME
    cache_templates: bool = True
    encoding: str = DEFAULT_ENCODING
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT
    user_vars: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # normalizes values that may arrive as plain strings from toml or the cli.
        self.views_dir = Path(self.views_dir)
        if self.template_extension and not self.template_extension.startswith("."):
            self.template_extension = "." + self.template_extension
        if self.default_layout == "":
            self.default_layout = None
