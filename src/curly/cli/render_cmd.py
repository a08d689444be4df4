"""Template CLI commands: render, check and inspect."""

import json
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any

import click
import yaml

from curly.config import EngineConfig
from curly.errors import EvaluationError, TemplateError
from curly.expressions.builtins import default_methods
from curly.templates.template import Template


def load_template(path: Path) -> Template:
    """Compile a template file, exiting with status 1 on compile errors."""
    source = path.read_text(encoding="utf-8")
    try:
        return Template(source, EngineConfig.from_env())
    except TemplateError as e:
        click.echo(click.style(f"{path}: {e}", fg="red"), err=True)
        raise SystemExit(1)


def load_data(path: Path | None) -> Mapping[str, Any]:
    """Load render data from a YAML or JSON file.

    JSON numbers with a fraction are read as decimals so they keep every digit.
    """
    if path is None:
        return {}

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text, parse_float=Decimal)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        click.echo(click.style(f"{path}: cannot parse data: {e}", fg="red"), err=True)
        raise SystemExit(1)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        click.echo(
            click.style(f"{path}: data must be a mapping at the top level", fg="red"), err=True
        )
        raise SystemExit(1)
    return data


@click.command()
@click.argument("template_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--data",
    "data_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML or JSON file with the render data.",
)
@click.option(
    "--no-builtins",
    is_flag=True,
    default=False,
    help="Render without the built-in methods.",
)
def render(template_path: Path, data_path: Path | None, no_builtins: bool):
    """Render a template file to stdout."""
    template = load_template(template_path)
    data = load_data(data_path)
    methods = {} if no_builtins else default_methods()

    try:
        output = template.render(data, methods)
    except EvaluationError as e:
        click.echo(click.style(f"{template_path}: {e}", fg="red"), err=True)
        raise SystemExit(1)

    click.echo(output, nl=False)


@click.command()
@click.argument(
    "template_paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def check(template_paths: tuple[Path, ...]):
    """Check that template files compile."""
    config = EngineConfig.from_env()
    failures = 0

    for path in template_paths:
        try:
            Template(path.read_text(encoding="utf-8"), config)
        except TemplateError as e:
            failures += 1
            click.echo(click.style(f"✗ {path}: {e}", fg="red"))
        else:
            click.echo(f"  ✓ {path}")

    if failures:
        click.echo(click.style(f"\n{failures} template(s) failed to compile", fg="red", bold=True))
        raise SystemExit(1)

    click.echo(click.style("\nAll templates compile.", fg="green", bold=True))


@click.command()
@click.argument("template_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
def inspect(template_path: Path, as_json: bool):
    """List the variables and methods a template uses."""
    template = load_template(template_path)

    if as_json:
        click.echo(
            json.dumps({"variables": template.variables, "methods": template.methods}, indent=2)
        )
        return

    click.echo("Variables:")
    for name in template.variables:
        click.echo(f"  {name}")
    click.echo("Methods:")
    for name in template.methods:
        click.echo(f"  {name}")
