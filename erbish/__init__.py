"""erbish: ERB-style view templates with layouts."""

__version__ = "0.1.0"

from erbish.core.templating import (
    DEFAULT_LAYOUT,
    DictSource,
    FileSystemSource,
    TemplateRenderer,
    compile_template,
    execute,
    render_with_layout,
)
from erbish.exceptions import (
    ErbishError,
    EvaluationError,
    LayoutNotFoundError,
    ParseError,
    TemplateError,
    TemplateNotFoundError,
)

__all__ = [
    "__version__",
    "TemplateRenderer",
    "DEFAULT_LAYOUT",
    "DictSource",
    "FileSystemSource",
    "compile_template",
    "execute",
    "render_with_layout",
    "ErbishError",
    "TemplateError",
    "ParseError",
    "EvaluationError",
    "TemplateNotFoundError",
    "LayoutNotFoundError",
]
