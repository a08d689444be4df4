"""Method registry for the curly expression language.

Methods are callable from expressions (e.g., ``upper(name)``,
``join(tags, ", ")``). A registry is an ordinary read-only mapping from
method name to callable, so any ``dict`` works wherever a registry is
accepted; ``MethodRegistry`` adds documentation metadata on top.

Registries are plain instances. There is no process-wide registry: each
template render receives the methods it may call.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from curly.expressions.lexer import IDENTIFIER_PATTERN


class MethodCategory(Enum):
    """Categories for organizing methods in documentation."""

    STRING = "string"
    MATH = "math"
    COLLECTION = "collection"
    FORMAT = "format"
    CUSTOM = "custom"


@dataclass
class MethodDefinition:
    """Complete definition of a template method.

    Attributes:
        name: Method name as used in expressions
        description: Human-readable description
        category: Category for documentation organization
        implementation: The Python callable
        examples: Example expressions using this method
    """

    name: str
    description: str
    category: MethodCategory
    implementation: Callable[..., Any]
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Export for documentation output."""
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "examples": self.examples,
        }


class MethodRegistry(Mapping[str, Callable[..., Any]]):
    """Registry of template methods.

    Example:
        registry = MethodRegistry()

        @registry.method(description="Repeat a string")
        def repeat(value, times):
            return str(value) * times

        Template("{{ repeat('ab', 2) }}").render(methods=registry)  # "abab"
    """

    def __init__(self, methods: Mapping[str, Callable[..., Any]] | None = None):
        self._definitions: dict[str, MethodDefinition] = {}
        for name, implementation in (methods or {}).items():
            self.add(name, implementation)

    # -------------------------------------------------------------------------
    # Mapping protocol
    # -------------------------------------------------------------------------

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._definitions[name].implementation

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"MethodRegistry({sorted(self._definitions)!r})"

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, definition: MethodDefinition) -> None:
        """Register a method definition, replacing any method of the same name.

        Raises:
            ValueError: If the name cannot be spelled in an expression or the
                implementation is not callable
        """
        if not IDENTIFIER_PATTERN.fullmatch(definition.name) or ".." in definition.name:
            raise ValueError(f"Invalid method name: {definition.name!r}")
        if not callable(definition.implementation):
            raise ValueError(f"Method '{definition.name}' implementation is not callable")
        self._definitions[definition.name] = definition

    def add(
        self,
        name: str,
        implementation: Callable[..., Any],
        description: str = "",
        category: MethodCategory = MethodCategory.CUSTOM,
        examples: list[str] | None = None,
    ) -> None:
        """Register a callable under a name."""
        self.register(
            MethodDefinition(
                name=name,
                description=description or (implementation.__doc__ or "").strip(),
                category=category,
                implementation=implementation,
                examples=examples or [],
            )
        )

    def method(
        self,
        name: str | None = None,
        *,
        description: str = "",
        category: MethodCategory = MethodCategory.CUSTOM,
        examples: list[str] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``add``; the function name is used when name is omitted."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add(name or func.__name__, func, description, category, examples)
            return func

        return decorator

    def remove(self, name: str) -> None:
        """Remove a method.

        Raises:
            KeyError: If no method has that name
        """
        del self._definitions[name]

    def clear(self) -> None:
        """Remove all methods."""
        self._definitions.clear()

    def copy(self) -> "MethodRegistry":
        """Return an independent registry with the same definitions."""
        clone = MethodRegistry()
        clone._definitions.update(self._definitions)
        return clone

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_definition(self, name: str) -> MethodDefinition:
        """Get a method definition by name.

        Raises:
            ValueError: If the method is not registered
        """
        if name not in self._definitions:
            raise ValueError(f"Unknown method: {name}")
        return self._definitions[name]

    def definitions(self) -> list[MethodDefinition]:
        """List all registered definitions in registration order."""
        return list(self._definitions.values())

    def list_by_category(self, category: MethodCategory) -> list[MethodDefinition]:
        """List methods in a specific category."""
        return [d for d in self._definitions.values() if d.category == category]

    def export_documentation(self) -> dict[str, Any]:
        """Export the registry for documentation.

        Returns:
            Dict with all method definitions, also grouped by category
        """
        by_category: dict[str, list[dict[str, Any]]] = {}
        for definition in self._definitions.values():
            by_category.setdefault(definition.category.value, []).append(definition.to_dict())

        return {
            "methods": {name: d.to_dict() for name, d in self._definitions.items()},
            "byCategory": by_category,
        }
