"""Template tree node types.

A compiled template is a tuple of these nodes. Nodes are immutable and hold
their children in tuples, so a compiled tree can be shared between threads and
rendered any number of times.
"""

from dataclasses import dataclass
from typing import Union

from curly.expressions.parser import ExprNode


@dataclass(frozen=True)
class Text:
    """Literal text copied to the output unchanged."""
    text: str


@dataclass(frozen=True)
class Interpolation:
    """A ``{{ expression }}`` tag."""
    expression: ExprNode


@dataclass(frozen=True)
class Comment:
    """A ``{# text #}`` tag; renders nothing."""
    text: str


@dataclass(frozen=True)
class ForLoop:
    """A ``{% for item[, index] in source %}`` block."""
    item_var: str
    index_var: str | None
    source: ExprNode
    body: tuple["TemplateNode", ...]


@dataclass(frozen=True)
class IfBranch:
    condition: ExprNode
    body: tuple["TemplateNode", ...]


@dataclass(frozen=True)
class If:
    """An if/elif/else block; ``else_body`` is None when there is no else."""
    branches: tuple[IfBranch, ...]
    else_body: tuple["TemplateNode", ...] | None = None


TemplateNode = Union[Text, Interpolation, Comment, ForLoop, If]
