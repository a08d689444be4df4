"""Structural parser for curly templates.

Splits template text into literal text, ``{{ expression }}`` interpolations,
``{# comment #}`` tags and ``{% statement %}`` blocks, and hands every embedded
expression to the expression parser.

Blocks nest freely. The closer of a ``for`` or ``if`` block is located by depth
counting: a nested opener of the same kind increments the depth and a closer
decrements it, while a nested block of the other kind is skipped as a whole by
finding its own closer first. ``elif`` and ``else`` belong to the innermost
``if`` that is still open.

All positions reported in errors are offsets into the full template text.
"""

import logging
import re
from dataclasses import dataclass

from curly.config import DEFAULT_CONFIG, EngineConfig
from curly.errors import TemplateStructureError
from curly.expressions.parser import ExprNode, Parser
from curly.templates.nodes import Comment, ForLoop, If, IfBranch, Interpolation, TemplateNode, Text

logger = logging.getLogger(__name__)

# (opener, closer, kind)
TAG_DELIMITERS = (
    ("{{", "}}", "expression"),
    ("{%", "%}", "statement"),
    ("{#", "#}", "comment"),
)

BLOCK_CLOSERS = {"for": "endfor", "if": "endif"}

# Names that may not be bound by a for loop
RESERVED_KEYWORDS = frozenset(
    {
        "break", "case", "catch", "class", "const", "continue", "debugger", "default",
        "delete", "do", "else", "export", "extends", "finally", "for", "function",
        "if", "import", "in", "instanceof", "let", "new", "return", "super", "switch",
        "this", "throw", "try", "typeof", "var", "void", "while", "with", "yield",
        "true", "false",
        "null", "undefined",
        "elif", "endif", "endfor",
    }
)

FOR_HEADER = re.compile(
    r"for\s+([a-zA-Z_]\w*)(?:\s*,\s*([a-zA-Z_]\w*))?\s+in\s+(.+)", re.ASCII | re.DOTALL
)
IF_HEADER = re.compile(r"if\s+(.+)", re.DOTALL)
ELIF_HEADER = re.compile(r"elif\s+(.+)", re.DOTALL)


@dataclass(frozen=True)
class Tag:
    """A located tag.

    Attributes:
        start: Offset of the opening delimiter
        end: Offset just past the closing delimiter
        content: Text between the delimiters, stripped
        content_start: Offset of the first character of ``content``
    """

    start: int
    end: int
    content: str
    content_start: int

    @property
    def keyword(self) -> str:
        parts = self.content.split(None, 1)
        return parts[0] if parts else ""


class TemplateParser:
    """Compiles template text into a tuple of template nodes.

    Usage:
        nodes = TemplateParser("Hello {{ name }}!").parse()
    """

    def __init__(self, source: str, config: EngineConfig | None = None):
        self.source = source
        self.config = config or DEFAULT_CONFIG

    def parse(self) -> tuple[TemplateNode, ...]:
        """Parse the whole template.

        Raises:
            TemplateStructureError: For malformed tags and blocks
            TemplateSyntaxError: For malformed embedded expressions
        """
        nodes = self._parse_range(0, len(self.source), depth=0)
        logger.debug("Parsed template into %d top-level nodes", len(nodes))
        return nodes

    # -------------------------------------------------------------------------
    # Tag scanning
    # -------------------------------------------------------------------------

    def _make_tag(self, start: int, close: int) -> Tag:
        raw = self.source[start + 2:close]
        leading = len(raw) - len(raw.lstrip())
        return Tag(start, close + 2, raw.strip(), start + 2 + leading)

    def _next_statement_tag(self, start: int, end: int) -> Tag | None:
        opener = self.source.find("{%", start, end)
        if opener == -1:
            return None
        close = self.source.find("%}", opener + 2, end)
        if close == -1:
            return None
        return self._make_tag(opener, close)

    def _next_tag(self, start: int, end: int) -> tuple[int, str, str] | None:
        found = None
        for opener, closer, kind in TAG_DELIMITERS:
            position = self.source.find(opener, start, end)
            if position != -1 and (found is None or position < found[0]):
                found = (position, closer, kind)
        return found

    def find_matching_end(
        self, start: int, end: int, keyword: str, end_keyword: str, depth: int = 0
    ) -> Tag | None:
        """Find the closer of a block whose header ends at ``start``.

        Args:
            start: Offset just past the block header
            end: Offset where scanning stops
            keyword: Opening keyword ("for" or "if")
            end_keyword: Closing keyword ("endfor" or "endif")
            depth: Current block nesting depth

        Returns:
            The closing tag, or None when the block is never closed
        """
        level = 1
        position = start
        while position < end:
            tag = self._next_statement_tag(position, end)
            if tag is None:
                return None

            word = tag.keyword
            if word == keyword:
                level += 1
            elif tag.content == end_keyword:
                level -= 1
                if level == 0:
                    return tag
            elif word in BLOCK_CLOSERS:
                # Skip a whole block of the other kind
                self._check_depth(depth + 1, tag.start)
                inner = self.find_matching_end(
                    tag.end, end, word, BLOCK_CLOSERS[word], depth + 1
                )
                if inner is not None:
                    position = inner.end
                    continue

            position = tag.end

        return None

    def _check_depth(self, depth: int, position: int) -> None:
        limit = self.config.max_nesting_depth
        if depth > limit:
            raise TemplateStructureError(
                f"Template nesting exceeds maximum depth of {limit}", position
            )

    def _expression(self, text: str, offset: int) -> ExprNode:
        return Parser(text, self.config, offset).parse()

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def _parse_range(self, start: int, end: int, depth: int) -> tuple[TemplateNode, ...]:
        nodes: list[TemplateNode] = []
        position = start

        while position < end:
            found = self._next_tag(position, end)
            if found is None:
                nodes.append(Text(self.source[position:end]))
                break

            opener, closer, kind = found
            if opener > position:
                nodes.append(Text(self.source[position:opener]))

            close = self.source.find(closer, opener + 2, end)
            if close == -1:
                raise TemplateStructureError("Unclosed tag", opener)
            tag = self._make_tag(opener, close)

            if kind == "comment":
                nodes.append(Comment(tag.content))
                position = tag.end
            elif kind == "expression":
                nodes.append(Interpolation(self._expression(tag.content, tag.content_start)))
                position = tag.end
            else:
                node, position = self._parse_statement(tag, end, depth)
                nodes.append(node)

        return tuple(nodes)

    def _parse_statement(self, tag: Tag, end: int, depth: int) -> tuple[TemplateNode, int]:
        word = tag.keyword
        if word == "for":
            return self._parse_for(tag, end, depth)
        if word == "if":
            return self._parse_if(tag, end, depth)
        if word in ("endfor", "endif", "else", "elif"):
            raise TemplateStructureError(f"Unexpected tag: {tag.content}", tag.start)
        raise TemplateStructureError(f"Unknown statement: {tag.content}", tag.start)

    def _parse_for(self, tag: Tag, end: int, depth: int) -> tuple[ForLoop, int]:
        match = FOR_HEADER.fullmatch(tag.content)
        if match is None:
            raise TemplateStructureError(f"Invalid for loop syntax: {tag.content}", tag.start)

        item_var, index_var, source_text = match.groups()
        for name in (item_var, index_var):
            if name is not None and name in RESERVED_KEYWORDS:
                raise TemplateStructureError(
                    f"Cannot use reserved keyword '{name}' as variable name in for loop",
                    tag.start,
                )

        source = self._expression(source_text, tag.content_start + match.start(3))

        self._check_depth(depth + 1, tag.start)
        closer = self.find_matching_end(tag.end, end, "for", "endfor", depth + 1)
        if closer is None:
            raise TemplateStructureError("No matching endfor for for loop", tag.start)

        body = self._parse_range(tag.end, closer.start, depth + 1)
        return ForLoop(item_var, index_var, source, body), closer.end

    def _parse_if(self, tag: Tag, end: int, depth: int) -> tuple[If, int]:
        match = IF_HEADER.fullmatch(tag.content)
        if match is None:
            raise TemplateStructureError(f"Invalid if syntax: {tag.content}", tag.start)
        self._check_depth(depth + 1, tag.start)

        branches: list[IfBranch] = []
        condition: ExprNode | None = self._expression(
            match.group(1), tag.content_start + match.start(1)
        )
        branch_start = tag.end
        nested = 0
        position = tag.end

        while position < end:
            inner = self._next_statement_tag(position, end)
            if inner is None:
                break

            word = inner.keyword
            if word == "if":
                nested += 1
            elif inner.content == "endif":
                if nested:
                    nested -= 1
                else:
                    body = self._parse_range(branch_start, inner.start, depth + 1)
                    if condition is None:
                        return If(tuple(branches), body), inner.end
                    branches.append(IfBranch(condition, body))
                    return If(tuple(branches), None), inner.end
            elif nested == 0 and word == "elif":
                if condition is None:
                    raise TemplateStructureError("Unexpected tag: elif after else", inner.start)
                elif_match = ELIF_HEADER.fullmatch(inner.content)
                if elif_match is None:
                    raise TemplateStructureError(
                        f"Invalid elif syntax: {inner.content}", inner.start
                    )
                body = self._parse_range(branch_start, inner.start, depth + 1)
                branches.append(IfBranch(condition, body))
                condition = self._expression(
                    elif_match.group(1), inner.content_start + elif_match.start(1)
                )
                branch_start = inner.end
            elif nested == 0 and inner.content == "else":
                if condition is None:
                    raise TemplateStructureError("Unexpected tag: else after else", inner.start)
                body = self._parse_range(branch_start, inner.start, depth + 1)
                branches.append(IfBranch(condition, body))
                condition = None
                branch_start = inner.end

            position = inner.end

        raise TemplateStructureError("No matching endif for if block", tag.start)


def parse_template(source: str, config: EngineConfig | None = None) -> tuple[TemplateNode, ...]:
    """Convenience function to compile template text into nodes."""
    return TemplateParser(source, config).parse()
