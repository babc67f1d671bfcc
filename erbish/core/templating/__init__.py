# erbish/core/templating/__init__.py
"""
Templating module for erbish.

Provides the TemplateRenderer entry point plus the lower-level compile,
execute and layout functions it is built from.
"""
from .compiler import compile_template
from .executor import execute
from .layout import render_with_layout
from .renderer import DEFAULT_LAYOUT, TemplateRenderer
from .sources import DictSource, FileSystemSource, TemplateSource
from .segments import ControlSegment, LiteralSegment, OutputSegment, TemplateUnit
from .context_builder import build_template_context, load_context_file

__all__ = [
    "TemplateRenderer",
    "DEFAULT_LAYOUT",
    "compile_template",
    "execute",
    "render_with_layout",
    "TemplateSource",
    "DictSource",
    "FileSystemSource",
    "TemplateUnit",
    "LiteralSegment",
    "OutputSegment",
    "ControlSegment",
    "build_template_context",
    "load_context_file",
]
