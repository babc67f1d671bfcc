# erbish/config/__init__.py
"""Configuration dataclass and toml loading for erbish."""
from .settings import RenderConfig
from .loader import load_config_file_data, build_render_config

__all__ = [
    "RenderConfig",
    "load_config_file_data",
    "build_render_config",
]
