"""Template tree CLI commands: export and import."""

import json
from pathlib import Path

import click

from curly.cli.render_cmd import load_template
from curly.config import EngineConfig
from curly.errors import SerializationError
from curly.templates.template import Template


@click.command()
@click.argument("template_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--indent", default=2, show_default=True, help="JSON indentation.")
def export(template_path: Path, indent: int):
    """Print the compiled tree of a template as JSON."""
    template = load_template(template_path)
    click.echo(json.dumps(template.to_json(), indent=indent, ensure_ascii=False))


@click.command("import")
@click.argument("tree_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_cmd(tree_path: Path):
    """Rebuild template source from an exported JSON tree."""
    try:
        data = json.loads(tree_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        click.echo(click.style(f"{tree_path}: invalid JSON: {e}", fg="red"), err=True)
        raise SystemExit(1)

    try:
        template = Template.from_json(data, EngineConfig.from_env())
    except SerializationError as e:
        click.echo(click.style(f"{tree_path}: {e}", fg="red"), err=True)
        for issue in e.issues[1:]:
            click.echo(click.style(f"  {issue}", fg="red"), err=True)
        raise SystemExit(1)

    click.echo(template.source, nl=False)
