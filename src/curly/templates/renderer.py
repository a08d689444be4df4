"""Renders compiled template nodes against data."""

from collections import ChainMap
from collections.abc import Mapping
from typing import Any, Callable, Iterable

from curly.config import DEFAULT_CONFIG, EngineConfig
from curly.expressions.evaluator import EvaluationContext, Evaluator, is_truthy, to_string
from curly.templates.nodes import Comment, ForLoop, If, Interpolation, TemplateNode, Text


class Renderer:
    """Walks template nodes and produces output text.

    Usage:
        ctx = EvaluationContext(data={"name": "Ada"})
        text = Renderer(ctx).render(nodes)
    """

    def __init__(self, context: EvaluationContext):
        self.context = context
        self.evaluator = Evaluator(context)

    def render(self, nodes: Iterable[TemplateNode]) -> str:
        return "".join(self.render_node(node) for node in nodes)

    def render_node(self, node: TemplateNode) -> str:
        method = getattr(self, f"_render_{type(node).__name__.lower()}")
        return method(node)

    def _render_text(self, node: Text) -> str:
        return node.text

    def _render_comment(self, node: Comment) -> str:
        return ""

    def _render_interpolation(self, node: Interpolation) -> str:
        return to_string(self.evaluator.evaluate(node.expression))

    def _render_forloop(self, node: ForLoop) -> str:
        items = self.evaluator.evaluate(node.source)
        # Only lists iterate; strings, mappings and scalars render nothing
        if not isinstance(items, (list, tuple)):
            return ""

        parts = []
        for index, item in enumerate(items):
            scope: dict[str, Any] = {node.item_var: item}
            if node.index_var:
                scope[node.index_var] = index
            child = Renderer(self.context.scoped(ChainMap(scope, self.context.data)))
            parts.append(child.render(node.body))
        return "".join(parts)

    def _render_if(self, node: If) -> str:
        for branch in node.branches:
            if is_truthy(self.evaluator.evaluate(branch.condition)):
                return self.render(branch.body)
        if node.else_body is not None:
            return self.render(node.else_body)
        return ""


def render_nodes(
    nodes: Iterable[TemplateNode],
    data: Mapping[str, Any] | None = None,
    methods: Mapping[str, Callable[..., Any]] | None = None,
    config: EngineConfig | None = None,
) -> str:
    """Render nodes against data and methods."""
    context = EvaluationContext(
        data=data or {}, methods=methods or {}, config=config or DEFAULT_CONFIG
    )
    return Renderer(context).render(nodes)
