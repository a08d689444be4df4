"""Exception hierarchy for the curly template engine.

Compile-time errors (syntax and structure) are fatal: a template that raises
one of them never produces a usable compiled object. Evaluation-time problems
such as missing data resolve to neutral values instead of raising, so the only
runtime error is a failure inside a caller-supplied method.
"""


class TemplateError(Exception):
    """Base class for all curly errors."""


class TemplateSyntaxError(TemplateError):
    """Malformed expression (tokenizer or expression parser).

    Attributes:
        position: Character offset within the expression, or None if unknown
    """

    def __init__(self, message: str, position: int | None = None):
        self.message = message
        self.position = position
        if position is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} at position {position}")


class TemplateStructureError(TemplateError):
    """Malformed template structure (tags, blocks, headers).

    Attributes:
        position: Character offset within the template, or None if unknown
    """

    def __init__(self, message: str, position: int | None = None):
        self.message = message
        self.position = position
        if position is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} at position {position}")


class EvaluationError(TemplateError):
    """A caller-supplied method failed while rendering."""


class SerializationError(TemplateError):
    """A serialized template tree could not be imported.

    Attributes:
        issues: One readable line per schema violation (may be empty)
    """

    def __init__(self, message: str, issues: list[str] | None = None):
        self.issues = issues or []
        super().__init__(message)
