# erbish/core/templating/sources.py
"""
Template source stores: resolve a template id to raw source text.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import structlog

from erbish.config.settings import DEFAULT_ENCODING, DEFAULT_TEMPLATE_EXTENSION
from erbish.exceptions import TemplateError, TemplateNotFoundError
from erbish.util import strip_utf8_bom

log = structlog.get_logger(__name__)


class TemplateSource(ABC):
    """Read-only lookup of template source text by id."""

    @abstractmethod
    def resolve(self, template_id: str) -> str:
        """Returns raw source text, raising TemplateNotFoundError if absent."""

    @abstractmethod
    def exists(self, template_id: str) -> bool:
        ...

    @abstractmethod
    def list_templates(self) -> List[str]:
        ...


class DictSource(TemplateSource):
    """In-memory templates, e.g. inline views or tests."""

    def __init__(self, templates: Optional[Mapping[str, str]] = None):
        self.templates: Dict[str, str] = dict(templates or {})

    def resolve(self, template_id: str) -> str:
        try:
            return self.templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(f"Template '{template_id}' not found", template_id) from None

    def exists(self, template_id: str) -> bool:
        return template_id in self.templates

    def list_templates(self) -> List[str]:
        return sorted(self.templates)


class FileSystemSource(TemplateSource):
    """Templates stored as files under a views directory: '<root>/<id><extension>'."""

    def __init__(self, root: Path, extension: str = DEFAULT_TEMPLATE_EXTENSION, encoding: str = DEFAULT_ENCODING):
        self.root = Path(root)
        self.extension = extension
        self.encoding = encoding

    def path_for(self, template_id: str) -> Optional[Path]:
        # maps an id to a file path, or None if the id would escape the views directory
        relative = template_id if template_id.endswith(self.extension) else template_id + self.extension
        root = self.root.resolve()
        candidate = (root / relative).resolve()
        if not candidate.is_relative_to(root):
            log.warning("template_id_outside_views_dir", template=template_id, root=str(root))
            return None
        return candidate

    def resolve(self, template_id: str) -> str:
        path = self.path_for(template_id)
        if path is None or not path.is_file():
            raise TemplateNotFoundError(
                f"Template '{template_id}' not found in {self.root} (expected {template_id}{self.extension})",
                template_id,
            )
        log.debug("reading_template_file", template=template_id, path=str(path))
        try:
            raw_bytes = path.read_bytes()
        except OSError as e:
            raise TemplateError(f"Failed to read template file {path}: {e}", template_id) from e
        try:
            return strip_utf8_bom(raw_bytes).decode(self.encoding)
        except UnicodeDecodeError as e:
            raise TemplateError(f"Template file {path} is not valid {self.encoding}: {e}", template_id) from e

    def exists(self, template_id: str) -> bool:
        path = self.path_for(template_id)
        return path is not None and path.is_file()

    def list_templates(self) -> List[str]:
        if not self.root.is_dir():
            return []
        names = []
        for path in self.root.rglob(f"*{self.extension}"):
            if path.is_file():
                relative = path.relative_to(self.root).as_posix()
                names.append(relative[: -len(self.extension)])
        return sorted(names)
