"""curly: an embeddable template engine with exact arithmetic.

    from decimal import Decimal
    from curly import Template

    Template("{{ qty }} x {{ price }} = {{ qty * price }}").render(
        {"qty": 3, "price": Decimal("0.10")}
    )  # "3 x 0.1 = 0.3"
"""

from curly.config import DEFAULT_CONFIG, EngineConfig
from curly.errors import (
    EvaluationError,
    SerializationError,
    TemplateError,
    TemplateStructureError,
    TemplateSyntaxError,
)
from curly.expressions.builtins import default_methods
from curly.expressions.methods import MethodRegistry
from curly.templates.template import Template

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "EngineConfig",
    "EvaluationError",
    "MethodRegistry",
    "SerializationError",
    "Template",
    "TemplateError",
    "TemplateStructureError",
    "TemplateSyntaxError",
    "default_methods",
    "__version__",
]
