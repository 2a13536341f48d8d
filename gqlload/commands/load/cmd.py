"""CLI command for loading CSV/JSON data into a GraphQL backend."""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys

import click
from rich.markup import escape

from gqlload.helpers.console import console


@click.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("-m", "--mutation", default=None, help="Mutation to call (default: add<BaseName>s)")
@click.option("-t", "--type", "type_name", default=None, help="Type to convert to (default: file base name)")
@click.option(
    "-n",
    "--ndfout",
    default=None,
    type=click.Path(file_okay=False),
    help="Write NDF files to this directory instead of calling the endpoint",
)
@click.option(
    "-e",
    "--endpoint",
    default=None,
    envvar="GQLLOAD_ENDPOINT",
    help="Endpoint name from .graphqlconfig, or a URL",
)
@click.option(
    "-b", "--batchsize", "batch_size", default=1_000_000, type=click.IntRange(min=1),
    show_default=True, help="Records per mutation request",
)
@click.option("-p", "--project", default=None, help="Project name in .graphqlconfig")
@click.option(
    "-s",
    "--schema",
    "schema_path",
    default=None,
    envvar="GQLLOAD_SCHEMA",
    type=click.Path(exists=True, dir_okay=False),
    help="Schema file (SDL or introspection JSON), overrides the config",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to .graphqlconfig (default: search upwards from the current directory)",
)
@click.option(
    "--flush-every", default=10_000, type=click.IntRange(min=0), show_default=True,
    help="Write NDF output every N converted records (0 = end of file only)",
)
@click.option(
    "--list-rule",
    default="wrapped",
    type=click.Choice(["wrapped", "suffix", "either"]),
    show_default=True,
    help="How list fields are recognized in the schema",
)
@click.option(
    "--list-suffix",
    "list_suffixes",
    multiple=True,
    default=("Connection",),
    show_default=True,
    help="Type name suffix marking a list (repeatable, used by --list-rule suffix/either)",
)
@click.option(
    "--date-mode",
    default="iso",
    type=click.Choice(["iso", "short", "raw"]),
    show_default=True,
    help="Date output format for NDF files",
)
@click.option("--timeout", default=None, type=float, help="HTTP timeout in seconds")
def load(
    path: str,
    mutation: str | None,
    type_name: str | None,
    ndfout: str | None,
    endpoint: str | None,
    batch_size: int,
    project: str | None,
    schema_path: str | None,
    config_path: str | None,
    flush_every: int,
    list_rule: str,
    list_suffixes: tuple[str, ...],
    date_mode: str,
    timeout: float | None,
) -> None:
    """Load CSV and JSON files into a GraphQL endpoint or convert them to NDF."""
    from gqlload.client import GraphQLClient
    from gqlload.commands.load.coerce import DateMode
    from gqlload.commands.load.errors import LoadError
    from gqlload.commands.load.pipeline import LoadOptions, run_load
    from gqlload.commands.load.report import print_report
    from gqlload.commands.load.schema import SchemaReflector, list_predicate, load_schema
    from gqlload.formats.project_config import (
        ConfigError,
        ProjectConfig,
        find_config,
        load_config,
        resolve_endpoint,
    )

    try:
        found = Path(config_path) if config_path else find_config()
        config = load_config(found) if found else None
        if config is None and project:
            raise ConfigError(f"No config file found for project '{project}'")
        selected = config.project(project) if config else ProjectConfig()

        schema_file = Path(schema_path) if schema_path else None
        if schema_file is None and config is not None:
            schema_file = config.schema_file(selected)
        if schema_file is None:
            raise ConfigError("No schema found. Use --schema or set schemaPath in .graphqlconfig")

        console.print(f"[bold]Loading schema:[/bold] {escape(str(schema_file))}")
        reflector = SchemaReflector(
            load_schema(schema_file), list_predicate(list_rule, list_suffixes)
        )

        client = None
        if ndfout is None:
            target = resolve_endpoint(selected, endpoint)
            console.print(f"[bold]Using endpoint:[/bold] {escape(target.url)}")
            client = GraphQLClient(target.url, headers=target.headers, timeout=timeout)
    except (ConfigError, LoadError) as e:
        console.print(f"[red]✘ {escape(str(e))}[/red]")
        sys.exit(1)

    options = LoadOptions(
        mutation=mutation,
        type_name=type_name,
        ndf_out=Path(ndfout) if ndfout else None,
        batch_size=batch_size,
        flush_every=flush_every,
        date_mode=DateMode(date_mode),
    )

    def on_progress(msg: str) -> None:
        console.print(f"  {msg}")

    report = asyncio.run(
        run_load(path, reflector, options, client=client, on_progress=on_progress)
    )
    print_report(report, console)
