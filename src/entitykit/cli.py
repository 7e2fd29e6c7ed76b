"""Command-line interface for EntityKit.

Each command works on one collection described by a JSON schema file::

    {"kind": "vehicles", "fields": [{"name": "plate", "type": "string", "required": true}]}

Snapshots are read from and written to the configured storage path.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from pydantic import ValidationError

from entitykit.core.config import get_settings
from entitykit.core.exceptions import EntityKitError
from entitykit.core.logging import configure_logging, get_logger
from entitykit.application.services.entity_engine import EntityEngine
from entitykit.application.services.workspace import EntityWorkspace
from entitykit.domain.entities.schema import Schema
from entitykit.infrastructure.persistence.key_value import JsonFileKeyValueStore


def load_schema_file(path: str) -> tuple[str, Schema, list[dict[str, Any]] | None]:
    """Read ``kind``, ``fields`` and optional ``seed`` from a schema file.

    Raises:
        click.BadParameter: If the file is not valid JSON or misses a key.
        SchemaDefinitionError: If the field declarations are invalid.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}", param_hint="--schema")
    if not isinstance(document, dict) or "kind" not in document or "fields" not in document:
        raise click.BadParameter(f"{path} needs 'kind' and 'fields'", param_hint="--schema")
    return document["kind"], Schema.from_list(document["fields"]), document.get("seed")


def _open_engine(ctx: click.Context) -> EntityEngine:
    settings = get_settings()
    kind, schema, seed = load_schema_file(ctx.obj["schema"])
    data_dir = ctx.obj.get("data_dir") or settings.storage_path
    workspace = EntityWorkspace(
        backend=JsonFileKeyValueStore(data_dir, encoding=settings.csv_encoding),
        settings=settings,
    )
    ctx.call_on_close(workspace.close)
    return workspace.add_collection(kind, schema, seed=seed)


def _echo_notification(engine: EntityEngine) -> None:
    notification = engine.channel.current
    if notification is not None:
        click.echo(notification.message, err=True)


@click.group()
@click.version_option(version="0.1.0", prog_name="EntityKit")
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file declaring the collection kind and fields",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Snapshot directory (overrides config)",
)
@click.pass_context
def cli(ctx: click.Context, schema_path: str, data_dir: str | None) -> None:
    """EntityKit - schema-driven entity collections.

    Create, query, import and export collections of records that
    persist as JSON snapshots.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    configure_logging(settings)
    ctx.ensure_object(dict)
    ctx.obj["schema"] = schema_path
    ctx.obj["data_dir"] = data_dir


@cli.command("list")
@click.option("--search", default="", help="Free-text search term")
@click.option(
    "--filter",
    "filters",
    multiple=True,
    metavar="FIELD=VALUE",
    help="Exact-match filter (repeatable)",
)
@click.option("--sort", default=None, help="Field to sort by")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.pass_context
def list_entities(
    ctx: click.Context, search: str, filters: tuple[str, ...], sort: str | None, desc: bool
) -> None:
    """Print the entities of the collection as JSON lines."""
    engine = _open_engine(ctx)
    engine.set_search_term(search)
    for item in filters:
        field, sep, value = item.partition("=")
        if not sep:
            raise click.BadParameter(f"expected FIELD=VALUE, got {item!r}", param_hint="--filter")
        engine.set_exact_filter(field, value)
    if sort:
        engine.request_sort(sort)
        if desc:
            engine.request_sort(sort)

    for entity in engine.results():
        click.echo(json.dumps(entity))


@cli.command("export")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=".",
    help="Directory the <kind>_<date>.csv file is written to",
)
@click.pass_context
def export_csv(ctx: click.Context, output_dir: str) -> None:
    """Export the collection to a dated CSV file."""
    engine = _open_engine(ctx)
    target = engine.export_to_file(output_dir)
    _echo_notification(engine)
    click.echo(str(target))


@cli.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_csv(ctx: click.Context, csv_file: str) -> None:
    """Import rows of a CSV file as new entities."""
    engine = _open_engine(ctx)
    result = asyncio.run(engine.import_file(csv_file))
    _echo_notification(engine)
    click.echo(json.dumps(result.to_dict()))
    if result.imported == 0 and result.total:
        raise SystemExit(1)


@cli.command()
@click.option("--rows", type=click.IntRange(1, 3), default=1, help="Number of sample rows")
@click.pass_context
def template(ctx: click.Context, rows: int) -> None:
    """Print an import template for the collection."""
    engine = _open_engine(ctx)
    click.echo(engine.export_template(rows=rows), nl=False)


@cli.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear(ctx: click.Context, force: bool) -> None:
    """Remove every entity of the collection."""
    engine = _open_engine(ctx)
    if not force:
        click.confirm(
            f"This will delete all {len(engine.list())} {engine.label} entries. Continue?",
            abort=True,
            default=False,
        )
    engine.clear()
    _echo_notification(engine)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Display EntityKit configuration and collection information."""
    settings = get_settings()
    engine = _open_engine(ctx)

    click.echo(f"""
EntityKit v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Storage Path: {ctx.obj.get("data_dir") or settings.storage_path}
  Debounce:     {settings.persistence_debounce_seconds}s

Collection:
  Kind:         {engine.kind}
  Storage Key:  {engine.storage_key}
  Fields:       {", ".join(engine.store.schema.names)}
  Entities:     {len(engine.list())}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `entitykit` command is run
    or when using `python -m entitykit`.
    """
    logger = get_logger(__name__)
    try:
        cli()
    except EntityKitError as e:
        logger.error("Command failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
