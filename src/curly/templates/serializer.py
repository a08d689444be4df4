"""Export and import of compiled template trees.

Trees are exchanged as JSON-compatible lists of dicts with a ``type``
discriminator on every node. Arbitrary-precision literals (``bigint`` and
``decimal``) travel as strings so no interchange format can round them.

Imported trees are validated against ``schemas/template.schema.json`` and can be
turned back into template text with ``reconstruct_source``. Reconstruction is
equivalent on render, not byte-identical: whitespace inside tags, escape
spelling and redundant parentheses are normalized.
"""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from curly.errors import SerializationError
from curly.expressions.numeric import format_number
from curly.expressions.parser import (
    OPERATORS,
    BinaryOp,
    ExprNode,
    Literal,
    MemberAccess,
    MethodCall,
    UnaryOp,
    Variable,
)
from curly.templates.nodes import Comment, ForLoop, If, IfBranch, Interpolation, TemplateNode, Text

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"
_SCHEMA_NAME = "template.schema.json"

_validator: Draft202012Validator | None = None


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _get_validator() -> Draft202012Validator:
    global _validator
    if _validator is None:
        _validator = Draft202012Validator(_load_schema(_SCHEMA_NAME))
    return _validator


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def expression_to_json(node: ExprNode) -> dict[str, Any]:
    if isinstance(node, Literal):
        return {"type": "literal", "dataType": node.data_type, "value": _literal_value(node)}
    if isinstance(node, Variable):
        return {"type": "variable", "name": node.name}
    if isinstance(node, BinaryOp):
        return {
            "type": "binaryOp",
            "operator": node.operator,
            "left": expression_to_json(node.left),
            "right": expression_to_json(node.right),
        }
    if isinstance(node, UnaryOp):
        return {
            "type": "unaryOp",
            "operator": node.operator,
            "operand": expression_to_json(node.operand),
        }
    if isinstance(node, MethodCall):
        return {
            "type": "methodCall",
            "methodName": node.name,
            "args": [expression_to_json(arg) for arg in node.args],
        }
    if isinstance(node, MemberAccess):
        return {
            "type": "memberAccess",
            "object": expression_to_json(node.object),
            "property": expression_to_json(node.property),
        }
    raise SerializationError(f"Unknown expression node: {type(node).__name__}")


def _literal_value(node: Literal) -> Any:
    if node.data_type == "array":
        return [expression_to_json(element) for element in node.value]
    if node.data_type in ("bigint", "decimal"):
        return str(node.value)
    if node.data_type == "number" and float(node.value).is_integer():
        return int(node.value)
    return node.value


def to_json(nodes: Iterable[TemplateNode]) -> list[dict[str, Any]]:
    """Export template nodes as JSON-compatible data."""
    return [_node_to_json(node) for node in nodes]


def _node_to_json(node: TemplateNode) -> dict[str, Any]:
    if isinstance(node, Text):
        return {"type": "text", "text": node.text}
    if isinstance(node, Interpolation):
        return {"type": "interpolation", "expression": expression_to_json(node.expression)}
    if isinstance(node, Comment):
        return {"type": "comment", "text": node.text}
    if isinstance(node, ForLoop):
        return {
            "type": "for",
            "itemVar": node.item_var,
            "indexVar": node.index_var,
            "arrayExpr": expression_to_json(node.source),
            "body": to_json(node.body),
        }
    if isinstance(node, If):
        return {
            "type": "if",
            "branches": [
                {"condition": expression_to_json(b.condition), "body": to_json(b.body)}
                for b in node.branches
            ],
            "elseBody": None if node.else_body is None else to_json(node.else_body),
        }
    raise SerializationError(f"Unknown template node: {type(node).__name__}")


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def validate(data: Any) -> list[str]:
    """Check serialized data against the template schema.

    Returns:
        One line per violation (empty when the data is valid)
    """
    issues = []
    for error in sorted(_get_validator().iter_errors(data), key=lambda e: list(e.path)):
        location = _json_path(error)
        issues.append(f"{location}: {error.message}" if location else error.message)
    return issues


def from_json(data: Any) -> tuple[TemplateNode, ...]:
    """Build template nodes from serialized data.

    Raises:
        SerializationError: If the data does not match the template schema
    """
    issues = validate(data)
    if issues:
        logger.debug("Rejected serialized template with %d schema issues", len(issues))
        raise SerializationError(f"Invalid template tree: {issues[0]}", issues)
    return tuple(_node_from_json(item) for item in data)


def _node_from_json(data: dict[str, Any]) -> TemplateNode:
    kind = data["type"]
    if kind == "text":
        return Text(data["text"])
    if kind == "comment":
        return Comment(data["text"])
    if kind == "interpolation":
        return Interpolation(expression_from_json(data["expression"]))
    if kind == "for":
        return ForLoop(
            data["itemVar"],
            data.get("indexVar"),
            expression_from_json(data["arrayExpr"]),
            tuple(_node_from_json(item) for item in data["body"]),
        )
    else_body = data.get("elseBody")
    return If(
        tuple(
            IfBranch(
                expression_from_json(branch["condition"]),
                tuple(_node_from_json(item) for item in branch["body"]),
            )
            for branch in data["branches"]
        ),
        None if else_body is None else tuple(_node_from_json(item) for item in else_body),
    )


def expression_from_json(data: dict[str, Any]) -> ExprNode:
    kind = data["type"]
    if kind == "literal":
        return _literal_from_json(data["dataType"], data["value"])
    if kind == "variable":
        return Variable(data["name"])
    if kind == "binaryOp":
        return BinaryOp(
            data["operator"],
            expression_from_json(data["left"]),
            expression_from_json(data["right"]),
        )
    if kind == "unaryOp":
        return UnaryOp(data["operator"], expression_from_json(data["operand"]))
    if kind == "methodCall":
        return MethodCall(
            data["methodName"], tuple(expression_from_json(arg) for arg in data["args"])
        )
    return MemberAccess(expression_from_json(data["object"]), expression_from_json(data["property"]))


def _literal_from_json(data_type: str, value: Any) -> Literal:
    if data_type == "array":
        return Literal(tuple(expression_from_json(item) for item in value), "array")
    if data_type == "bigint":
        return Literal(int(value), "bigint")
    if data_type == "decimal":
        return Literal(Decimal(value), "decimal")
    if data_type == "number":
        return Literal(float(value), "number")
    return Literal(value, data_type)


# ---------------------------------------------------------------------------
# Source reconstruction
# ---------------------------------------------------------------------------


def _string_literal(value: str) -> str:
    # Braces are escaped so no tag delimiter can appear inside the literal
    text = json.dumps(value, ensure_ascii=False)
    return text.replace("{", "\\u007b").replace("}", "\\u007d")


def reconstruct_expression(node: ExprNode) -> str:
    """Render an expression tree back to expression text."""
    if isinstance(node, Literal):
        if node.data_type == "string":
            return _string_literal(node.value)
        if node.data_type == "boolean":
            return "true" if node.value else "false"
        if node.data_type == "array":
            return "[" + ", ".join(reconstruct_expression(e) for e in node.value) + "]"
        if node.data_type == "decimal":
            text = str(node.value)
            # Keep a point or exponent so the literal reads back as a decimal
            if "." not in text and "E" not in text:
                text += ".0"
            return text
        return format_number(node.value)

    if isinstance(node, Variable):
        return node.name

    if isinstance(node, MemberAccess):
        obj = reconstruct_expression(node.object)
        if isinstance(node.object, (BinaryOp, UnaryOp)):
            obj = f"({obj})"
        return f"{obj}[{reconstruct_expression(node.property)}]"

    if isinstance(node, UnaryOp):
        operand = reconstruct_expression(node.operand)
        if isinstance(node.operand, BinaryOp):
            operand = f"({operand})"
        return f"{node.operator}{operand}"

    if isinstance(node, MethodCall):
        return f"{node.name}({', '.join(reconstruct_expression(a) for a in node.args)})"

    if isinstance(node, BinaryOp):
        spec = OPERATORS[node.operator]
        left = reconstruct_expression(node.left)
        if isinstance(node.left, BinaryOp):
            left_precedence = OPERATORS[node.left.operator].precedence
            if left_precedence < spec.precedence or (
                left_precedence == spec.precedence and spec.associativity == "right"
            ):
                left = f"({left})"
        right = reconstruct_expression(node.right)
        if isinstance(node.right, BinaryOp):
            right_precedence = OPERATORS[node.right.operator].precedence
            if right_precedence < spec.precedence or (
                right_precedence == spec.precedence and spec.associativity == "left"
            ):
                right = f"({right})"
        return f"{left} {node.operator} {right}"

    raise SerializationError(f"Unknown expression node: {type(node).__name__}")


def reconstruct_source(nodes: Iterable[TemplateNode]) -> str:
    """Render template nodes back to template text."""
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.text)
        elif isinstance(node, Interpolation):
            parts.append(f"{{{{ {reconstruct_expression(node.expression)} }}}}")
        elif isinstance(node, Comment):
            parts.append(f"{{# {node.text} #}}")
        elif isinstance(node, ForLoop):
            names = node.item_var
            if node.index_var:
                names = f"{node.item_var}, {node.index_var}"
            parts.append(f"{{% for {names} in {reconstruct_expression(node.source)} %}}")
            parts.append(reconstruct_source(node.body))
            parts.append("{% endfor %}")
        elif isinstance(node, If):
            for i, branch in enumerate(node.branches):
                keyword = "if" if i == 0 else "elif"
                parts.append(f"{{% {keyword} {reconstruct_expression(branch.condition)} %}}")
                parts.append(reconstruct_source(branch.body))
            if node.else_body is not None:
                parts.append("{% else %}")
                parts.append(reconstruct_source(node.else_body))
            parts.append("{% endif %}")
        else:
            raise SerializationError(f"Unknown template node: {type(node).__name__}")
    return "".join(parts)
