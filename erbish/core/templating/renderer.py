# erbish/core/templating/renderer.py
"""
Contains the TemplateRenderer class: the public entry point that resolves,
compiles (with caching) and renders templates, optionally inside a layout.
"""
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import structlog

from erbish.config.settings import DEFAULT_LAYOUT_NAME, RenderConfig
from erbish.exceptions import LayoutNotFoundError, TemplateError, TemplateNotFoundError

from .compiler import compile_template
from .executor import execute
from .helpers import BUILTIN_HELPERS
from .layout import render_with_layout
from .segments import TemplateUnit
from .sources import FileSystemSource, TemplateSource

log = structlog.get_logger(__name__)


class _DefaultLayout:
    def __repr__(self):
        return "DEFAULT_LAYOUT"


# use the renderer's default layout if the source store has it
DEFAULT_LAYOUT = _DefaultLayout()

LayoutArg = Union[str, None, bool, _DefaultLayout]


class TemplateRenderer:
    """Manages loading, compilation, caching and rendering of templates."""

    def __init__(
        self,
        source: TemplateSource,
        default_layout: Optional[str] = DEFAULT_LAYOUT_NAME,
        cache_templates: bool = True,
        helpers: Optional[Dict[str, Callable[..., Any]]] = None,
    ):
        self.source = source
        self.default_layout = default_layout
        self.cache_templates = cache_templates
        self.helpers: Dict[str, Callable[..., Any]] = {**BUILTIN_HELPERS, **(helpers or {})}
        # compiled units by template id; written without a lock, compiles are idempotent
        self._cache: Dict[str, TemplateUnit] = {}

    @classmethod
    def from_config(cls, config: RenderConfig) -> "TemplateRenderer":
        source = FileSystemSource(config.views_dir, config.template_extension, config.encoding)
        return cls(source, default_layout=config.default_layout, cache_templates=config.cache_templates)

    def register_helper(self, name: str, func: Callable[..., Any]):
        self.helpers[name] = func

    def get_unit(self, template_id: str) -> TemplateUnit:
        """Returns the compiled unit for template_id, compiling it on first use."""
        if self.cache_templates:
            unit = self._cache.get(template_id)
            if unit is not None:
                log.debug("template_cache_hit", template=template_id)
                return unit
        source_text = self.source.resolve(template_id)
        unit = compile_template(source_text, template_id)
        if self.cache_templates:
            self._cache[template_id] = unit
        return unit

    def reload(self):
        """Drops all cached compiled templates."""
        log.info("template_cache_cleared", entries=len(self._cache))
        self._cache.clear()

    def _resolve_layout(self, layout: LayoutArg) -> Optional[TemplateUnit]:
        if layout is None or layout is False:
            return None
        if layout is DEFAULT_LAYOUT or layout is True:
            if self.default_layout and self.source.exists(self.default_layout):
                return self.get_unit(self.default_layout)
            return None
        try:
            return self.get_unit(layout)
        except LayoutNotFoundError:
            raise
        except TemplateNotFoundError as e:
            raise LayoutNotFoundError(f"Layout '{layout}' not found", layout) from e

    def render(self, template_id: str, context: Optional[Mapping] = None, layout: LayoutArg = DEFAULT_LAYOUT) -> str:
        """
        Renders template_id with context. By default the renderer's default layout
        wraps the output when it exists; pass layout=None to skip it or a name to
        require a specific layout.
        """
        context = context or {}
        log.info("rendering_template", template=template_id, layout=repr(layout), context_keys=list(context.keys()))
        body_unit = self.get_unit(template_id)
        layout_unit = self._resolve_layout(layout)
        return self._render_units(body_unit, layout_unit, context)

    def render_string(self, source_text: str, context: Optional[Mapping] = None, layout: LayoutArg = None) -> str:
        """Renders inline template text; inline templates are never cached."""
        context = context or {}
        body_unit = compile_template(source_text, "<inline>")
        layout_unit = self._resolve_layout(layout)
        return self._render_units(body_unit, layout_unit, context)

    def _render_units(self, body_unit: TemplateUnit, layout_unit: Optional[TemplateUnit], context: Mapping) -> str:
        if layout_unit is None:
            return execute(body_unit, context, helpers=self.helpers)
        return render_with_layout(body_unit, context, layout_unit, context, helpers=self.helpers)

    def check_all(self) -> List[Tuple[str, Optional[TemplateError]]]:
        """Compiles every template in the source store; returns (id, error or None) pairs."""
        results: List[Tuple[str, Optional[TemplateError]]] = []
        for template_id in self.source.list_templates():
            try:
                compile_template(self.source.resolve(template_id), template_id)
                results.append((template_id, None))
            except TemplateError as e:
                log.warning("template_check_failed", template=template_id, error=str(e))
                results.append((template_id, e))
        return results
