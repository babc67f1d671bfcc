from typing import Optional


class ErbishError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(ErbishError):
    # errors related to configuration.
    pass

class OutputError(ErbishError):
    # errors during output operations.
    pass

class TemplateError(ErbishError):
    # errors related to template loading, compiling or rendering.
    def __init__(self, message: str, template_name: Optional[str] = None):
        super().__init__(message)
        self.template_name = template_name

class ParseError(TemplateError):
    # malformed tags or block structure, raised at compile time.
    def __init__(self, message: str, template_name: Optional[str] = None, line: Optional[int] = None):
        location = ""
        if template_name is not None:
            location = f" in template '{template_name}'"
            if line is not None:
                location += f" at line {line}"
        super().__init__(f"{message}{location}", template_name)
        self.line = line

class EvaluationError(TemplateError):
    # failures while executing a compiled template (undefined names, bad operations).
    def __init__(self, message: str, template_name: Optional[str] = None, identifier: Optional[str] = None):
        super().__init__(message, template_name)
        self.identifier = identifier

class TemplateNotFoundError(TemplateError):
    # the source store has no entry for the requested template id.
    pass

class LayoutNotFoundError(TemplateNotFoundError):
    # an explicitly requested layout does not exist.
    pass
