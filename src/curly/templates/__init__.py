"""Template compilation and rendering.

This module provides:
- TemplateParser: Compiles template text into template nodes
- Renderer: Renders nodes against data and methods
- Analyzer helpers: Referenced variables and methods
- Serializer: JSON export/import and source reconstruction
- Template: Compiled template facade
"""

from curly.templates.analyzer import extract_methods, extract_variables
from curly.templates.nodes import Comment, ForLoop, If, IfBranch, Interpolation, TemplateNode, Text
from curly.templates.parser import RESERVED_KEYWORDS, TemplateParser, parse_template
from curly.templates.renderer import Renderer, render_nodes
from curly.templates.serializer import from_json, reconstruct_source, to_json
from curly.templates.template import Template

__all__ = [
    # Analyzer
    "extract_methods",
    "extract_variables",
    # Nodes
    "Comment",
    "ForLoop",
    "If",
    "IfBranch",
    "Interpolation",
    "TemplateNode",
    "Text",
    # Parser
    "RESERVED_KEYWORDS",
    "TemplateParser",
    "parse_template",
    # Renderer
    "Renderer",
    "render_nodes",
    # Serializer
    "from_json",
    "reconstruct_source",
    "to_json",
    # Template
    "Template",
]
