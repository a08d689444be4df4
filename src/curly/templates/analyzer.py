"""Static analysis of compiled templates.

Collects the root variable names a template reads from its data (loop-bound
names excluded) and the method names it calls. Results keep first-use order.
"""

from typing import Iterable, Iterator

from curly.expressions.parser import (
    BinaryOp,
    ExprNode,
    Literal,
    MemberAccess,
    MethodCall,
    UnaryOp,
    Variable,
)
from curly.templates.nodes import ForLoop, If, Interpolation, TemplateNode


def iter_expression(node: ExprNode) -> Iterator[ExprNode]:
    """Yield an expression node and all of its descendants, depth first."""
    yield node
    if isinstance(node, Literal):
        if node.data_type == "array":
            for element in node.value:
                yield from iter_expression(element)
    elif isinstance(node, BinaryOp):
        yield from iter_expression(node.left)
        yield from iter_expression(node.right)
    elif isinstance(node, UnaryOp):
        yield from iter_expression(node.operand)
    elif isinstance(node, MethodCall):
        for arg in node.args:
            yield from iter_expression(arg)
    elif isinstance(node, MemberAccess):
        yield from iter_expression(node.object)
        yield from iter_expression(node.property)


def iter_expressions(
    nodes: Iterable[TemplateNode], loop_vars: frozenset[str] = frozenset()
) -> Iterator[tuple[ExprNode, frozenset[str]]]:
    """Yield every top-level expression with the loop names bound around it."""
    for node in nodes:
        if isinstance(node, Interpolation):
            yield node.expression, loop_vars
        elif isinstance(node, ForLoop):
            yield node.source, loop_vars
            bound = {node.item_var}
            if node.index_var:
                bound.add(node.index_var)
            yield from iter_expressions(node.body, loop_vars | bound)
        elif isinstance(node, If):
            for branch in node.branches:
                yield branch.condition, loop_vars
                yield from iter_expressions(branch.body, loop_vars)
            if node.else_body is not None:
                yield from iter_expressions(node.else_body, loop_vars)


def extract_variables(nodes: Iterable[TemplateNode]) -> list[str]:
    """Root names of referenced variables (``user`` for ``user.name``)."""
    found: dict[str, None] = {}
    for expression, loop_vars in iter_expressions(nodes):
        for node in iter_expression(expression):
            if isinstance(node, Variable):
                root = node.name.split(".", 1)[0]
                if root not in loop_vars:
                    found.setdefault(root)
    return list(found)


def extract_methods(nodes: Iterable[TemplateNode]) -> list[str]:
    """Names of every method called anywhere in the template."""
    found: dict[str, None] = {}
    for expression, _ in iter_expressions(nodes):
        for node in iter_expression(expression):
            if isinstance(node, MethodCall):
                found.setdefault(node.name)
    return list(found)
