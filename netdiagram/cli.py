"""Command-line interface for netdiagram."""

import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path

import click

from .errors import DiagramError
from .output.formatter import format_analysis, format_validation_result
from .schema.errors import ConfigurationError, SchemaLoadError, SchemaValidationError
from .settings import CONFIG_DIR_ENV, DATA_DIR_ENV, Settings
from .validators.runner import validate_config_dir


def _echo_config_error(e: ConfigurationError) -> None:
    if isinstance(e, SchemaLoadError):
        click.echo(f"Error loading file: {e}", err=True)
    elif isinstance(e, SchemaValidationError):
        click.echo(f"Schema validation error: {e}", err=True)
    else:
        click.echo(f"Configuration error: {e}", err=True)
    for err in e.errors:
        where = err.get("loc") or err.get("code") or ""
        click.echo(f"  - {where}: {err.get('msg', '')}", err=True)


@contextmanager
def _exit_on_errors():
    """Map configuration errors to exit code 2 and request errors to 1."""
    try:
        yield
    except ConfigurationError as e:
        _echo_config_error(e)
        sys.exit(2)
    except DiagramError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _services(ctx: click.Context):
    from .services import build_file_services

    if "services" not in ctx.meta:
        ctx.meta["services"] = build_file_services(ctx.find_object(Settings))
    return ctx.meta["services"]


@click.group()
@click.version_option(package_name="netdiagram")
@click.option(
    "--config-dir",
    envvar=CONFIG_DIR_ENV,
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help=f"Configuration directory (defaults to ${CONFIG_DIR_ENV})",
)
@click.option(
    "--data-dir",
    envvar=DATA_DIR_ENV,
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help=f"Diagram data directory (defaults to ${DATA_DIR_ENV})",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log progress to stderr")
@click.pass_context
def main(ctx: click.Context, config_dir: Path | None, data_dir: Path | None, verbose: bool):
    """netdiagram: keep network diagrams and their domain model in sync."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    settings = Settings.from_env()
    overrides = {}
    if config_dir is not None:
        overrides["config_dir"] = config_dir
    if data_dir is not None:
        overrides["data_dir"] = data_dir
    ctx.obj = settings.model_copy(update=overrides)


@main.command()
@click.argument("config_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors",
)
def validate(config_dir: str, output_format: str, strict: bool):
    """Validate a configuration directory.

    CONFIG_DIR holds netbox-model.yaml, netbox-to-mermaid.yaml and,
    optionally, mermaid-styles.yaml.

    Exit codes:
      0 - Validation passed
      1 - Validation failed (errors found)
      2 - File or schema error
    """
    try:
        result = validate_config_dir(config_dir)
    except ConfigurationError as e:
        _echo_config_error(e)
        sys.exit(2)

    output = format_validation_result(result, output_format)  # type: ignore
    click.echo(output)

    if result.has_errors:
        sys.exit(1)
    elif strict and result.has_warnings:
        sys.exit(1)
    else:
        sys.exit(0)


@main.command()
@click.argument("config_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def analyze(config_dir: str, output_format: str):
    """Print the dependency order of entity types per category.

    Exit codes:
      0 - Success
      2 - File, schema or dependency-cycle error
    """
    from .config import load_config
    from .graph.analyzer import ModelAnalysis

    with _exit_on_errors():
        config = load_config(config_dir)
        analysis = ModelAnalysis.from_schema(config.schema)

    click.echo(format_analysis(analysis, output_format))  # type: ignore


# -----------------------------------------------------------------------------
# Diagrams
# -----------------------------------------------------------------------------


@main.group()
def diagram():
    """Create, edit and inspect diagrams."""


@diagram.command("create")
@click.argument("name")
@click.pass_context
def diagram_create(ctx: click.Context, name: str):
    """Create an empty diagram and print its id."""
    with _exit_on_errors():
        created = _services(ctx).orchestrator.create_diagram(name)
    click.echo(created.id)


@diagram.command("list")
@click.pass_context
def diagram_list(ctx: click.Context):
    """List diagrams as ``<id>  <name>``."""
    with _exit_on_errors():
        diagrams = _services(ctx).diagrams.list()
    for entry in diagrams:
        click.echo(f"{entry.id}  {entry.name}")


@diagram.command("show")
@click.argument("diagram_id")
@click.pass_context
def diagram_show(ctx: click.Context, diagram_id: str):
    """Print a diagram's Mermaid document."""
    with _exit_on_errors():
        shown = _services(ctx).diagrams.get(diagram_id)
    click.echo(shown.content, nl=False)


@diagram.command("apply")
@click.argument("diagram_id")
@click.argument("command_json")
@click.pass_context
def diagram_apply(ctx: click.Context, diagram_id: str, command_json: str):
    """Apply a JSON command to a diagram.

    COMMAND_JSON is a JSON object such as
    '{"command": "create", "entity": "region", "parent": {"root": "infrastructure"},
    "attributes": {"name": "EU"}}'. Use '-' to read it from stdin.

    Prints the result as JSON. Exit code 1 on an invalid command.
    """
    raw = sys.stdin.read() if command_json == "-" else command_json
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        click.echo(f"Error: invalid command JSON: {e}", err=True)
        sys.exit(1)

    with _exit_on_errors():
        result = _services(ctx).orchestrator.apply(diagram_id, payload)

    click.echo(
        json.dumps(
            {
                "diagram_id": result.diagram_id,
                "name": result.name,
                "data": result.data,
                "content": result.content,
            },
            indent=2,
        )
    )


@diagram.command("delete")
@click.argument("diagram_id")
@click.pass_context
def diagram_delete(ctx: click.Context, diagram_id: str):
    """Delete a diagram and its domain state."""
    with _exit_on_errors():
        _services(ctx).orchestrator.delete_diagram(diagram_id)
    click.echo(f"Deleted {diagram_id}")


# -----------------------------------------------------------------------------
# CSV
# -----------------------------------------------------------------------------


@main.group()
def csv():
    """Export diagrams as CSV."""


@csv.command("types")
@click.argument("diagram_id")
@click.option("--category", help="Category name, e.g. 'Infrastructure'")
@click.pass_context
def csv_types(ctx: click.Context, diagram_id: str, category: str | None):
    """List the ordered entity types a category needs for a diagram."""
    with _exit_on_errors():
        ordered = _services(ctx).csv.list_ordered_types(diagram_id, category)
    click.echo(f"{ordered.category}:")
    for type_ in ordered.types:
        click.echo(f"  {type_}")


@csv.command("export")
@click.argument("diagram_id")
@click.argument("entity_type")
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to a file instead of stdout",
)
@click.pass_context
def csv_export(ctx: click.Context, diagram_id: str, entity_type: str, output_path: Path | None):
    """Print the CSV of one entity type."""
    with _exit_on_errors():
        _, element = _services(ctx).csv.get_element(diagram_id, entity_type)

    if output_path is None:
        click.echo(element.csv_content, nl=False)
    else:
        output_path.write_text(element.csv_content, encoding="utf-8")
        click.echo(f"Wrote {output_path}")


@csv.command("archive")
@click.argument("diagram_id")
@click.argument("output_path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def csv_archive(ctx: click.Context, diagram_id: str, output_path: Path):
    """Write a ZIP archive with one CSV per entity type."""
    with _exit_on_errors():
        dataset = _services(ctx).csv.write_archive(diagram_id, output_path)
    click.echo(f"Wrote {len(dataset.elements)} file(s) to {output_path}")


if __name__ == "__main__":
    main()
