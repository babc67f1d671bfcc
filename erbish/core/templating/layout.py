# erbish/core/templating/layout.py
"""
Wraps a rendered body in a layout template through the reserved `yield` binding.
"""
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

import structlog

from .executor import execute
from .segments import TemplateUnit

log = structlog.get_logger(__name__)


def render_with_layout(
    body_unit: TemplateUnit,
    body_context: Optional[Mapping],
    layout_unit: TemplateUnit,
    layout_context: Optional[Mapping],
    helpers: Optional[Dict[str, Callable[..., Any]]] = None,
) -> str:
    body_output = execute(body_unit, body_context, helpers=helpers)
    if not layout_unit.references_yield():
        # body is dropped; the layout renders on its own
        log.warning("layout_has_no_yield", layout=layout_unit.name, template=body_unit.name)
    return execute(layout_unit, layout_context, yield_value=body_output, helpers=helpers)
