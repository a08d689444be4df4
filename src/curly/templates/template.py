"""Compiled template facade."""

import logging
from collections.abc import Mapping
from typing import Any, Callable

from curly.config import DEFAULT_CONFIG, EngineConfig
from curly.errors import SerializationError, TemplateError
from curly.expressions.evaluator import EvaluationContext
from curly.templates.analyzer import extract_methods, extract_variables
from curly.templates.nodes import TemplateNode
from curly.templates.parser import TemplateParser
from curly.templates.renderer import Renderer
from curly.templates.serializer import from_json, reconstruct_source, to_json

logger = logging.getLogger(__name__)


class Template:
    """A compiled template.

    Compilation happens in the constructor and is all-or-nothing: a malformed
    template raises and never yields an object. A compiled template holds no
    per-render state, so one instance can be cached and rendered concurrently.

    Usage:
        template = Template("Hello {{ upper(name) }}!")
        template.render({"name": "ada"}, default_methods())  # "Hello ADA!"

    Raises:
        TemplateSyntaxError: For malformed expressions
        TemplateStructureError: For malformed tags and blocks
    """

    def __init__(self, source: str, config: EngineConfig | None = None):
        self._source = source
        self._config = config or DEFAULT_CONFIG
        self._nodes = TemplateParser(source, self._config).parse()
        logger.debug("Compiled template of %d characters", len(source))

    def __repr__(self) -> str:
        preview = self._source if len(self._source) <= 40 else self._source[:37] + "..."
        return f"Template({preview!r})"

    @property
    def source(self) -> str:
        return self._source

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def nodes(self) -> tuple[TemplateNode, ...]:
        return self._nodes

    @property
    def variables(self) -> list[str]:
        """Root data names the template reads, excluding loop variables."""
        return extract_variables(self._nodes)

    @property
    def methods(self) -> list[str]:
        """Method names the template calls."""
        return extract_methods(self._nodes)

    def render(
        self,
        data: Mapping[str, Any] | None = None,
        methods: Mapping[str, Callable[..., Any]] | None = None,
    ) -> str:
        """Render against data and methods.

        Missing data renders as empty text; only a failing method raises.

        Raises:
            EvaluationError: If a method raises
        """
        context = EvaluationContext(data=data or {}, methods=methods or {}, config=self._config)
        return Renderer(context).render(self._nodes)

    def to_json(self) -> list[dict[str, Any]]:
        """Export the compiled tree as JSON-compatible data."""
        return to_json(self._nodes)

    @classmethod
    def from_json(cls, data: Any, config: EngineConfig | None = None) -> "Template":
        """Rebuild a template from an exported tree.

        The tree is validated, turned back into template text and compiled
        again, so the result is a normal template with a ``source``.

        Raises:
            SerializationError: If the tree is malformed or does not compile
        """
        nodes = from_json(data)
        source = reconstruct_source(nodes)
        try:
            return cls(source, config)
        except TemplateError as e:
            raise SerializationError(f"Reconstructed template does not compile: {e}") from e
