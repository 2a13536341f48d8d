"""Driver for the load command.

Walks the input file or directory in sorted order, one file at a time, and
dispatches each file either to NDF conversion (when an output directory is
set) or to mutation upload. Every per-file handler returns a FileResult;
the driver merges them into the run's LoadReport.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape

from gqlload.commands.load.coerce import DateMode
from gqlload.commands.load.errors import LoadError, ParseFailed
from gqlload.commands.load.mutation import resolve_mutation
from gqlload.commands.load.ndf import DEFAULT_FLUSH_EVERY, NdfConverter, NdfWriter
from gqlload.commands.load.reader import Record, find_data_files, read_records
from gqlload.commands.load.report import FileResult, LoadReport
from gqlload.commands.load.schema import SchemaReflector
from gqlload.commands.load.upload import (
    DEFAULT_BATCH_SIZE,
    GraphQLTransport,
    upload_records,
)
from gqlload.helpers.naming import default_mutation_name, to_type_name


@dataclass
class LoadOptions:
    mutation: str | None = None
    type_name: str | None = None
    ndf_out: Path | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    flush_every: int = DEFAULT_FLUSH_EVERY
    date_mode: DateMode = DateMode.ISO


async def run_load(
    path: str | Path,
    reflector: SchemaReflector,
    options: LoadOptions,
    *,
    client: GraphQLTransport | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> LoadReport:
    """Process every supported file under *path* and return the run report."""

    def progress(msg: str) -> None:
        if on_progress:
            on_progress(msg)

    if options.ndf_out is None and client is None:
        raise ValueError("A GraphQL client is required when not converting to NDF")

    report = LoadReport()
    writer = NdfWriter(options.ndf_out) if options.ndf_out is not None else None

    for file in find_data_files(path):
        if writer is not None:
            result = convert_file(file, reflector, writer, options, progress)
        else:
            assert client is not None
            result = await upload_file(file, reflector, client, options, progress)
        report.merge(result)

    return report


def convert_file(
    file: Path,
    reflector: SchemaReflector,
    writer: NdfWriter,
    options: LoadOptions,
    progress: Callable[[str], None],
) -> FileResult:
    """Convert one file to NDF."""
    type_name = options.type_name or to_type_name(file.stem)
    try:
        type_ = reflector.resolve_node_type(type_name)
    except LoadError as e:
        progress(f"[red]✘ {escape(str(e))}[/red]")
        return FileResult(str(file), type_name, mutation_error=str(e))
    if type_.description:
        progress(f"Base type [yellow]{type_name}[/yellow]: {escape(type_.description)}")

    try:
        records = _read(file, progress)
    except ParseFailed as e:
        return FileResult(str(file), type_name, data_read_error=str(e))

    def warn(msg: str) -> None:
        progress(f"[yellow]⚠ {escape(msg)}[/yellow]")

    converter = NdfConverter(
        reflector,
        type_,
        writer,
        flush_every=options.flush_every,
        date_mode=options.date_mode,
        on_warning=warn,
    )
    try:
        ndf = converter.convert(records, source=str(file))
    except OSError as e:
        message = f"Cannot write NDF output: {e}"
        progress(f"[red]✘ {escape(message)}[/red]")
        return FileResult(str(file), type_name, ndf_errors=[message])

    for message in ndf.errors:
        progress(f"[red]✘ {escape(message)}[/red]")
    status = "green" if ndf.succeeded else "red"
    progress(
        f"[{status}]Converted {ndf.converted} of {ndf.records} {type_name} entities: "
        f"{ndf.nodes} nodes, {ndf.lists} lists, {ndf.relations} relations[/{status}]"
    )
    return FileResult.from_ndf(str(file), ndf)


async def upload_file(
    file: Path,
    reflector: SchemaReflector,
    client: GraphQLTransport,
    options: LoadOptions,
    progress: Callable[[str], None],
) -> FileResult:
    """Upload one file through its mutation."""
    mutation_name = options.mutation or default_mutation_name(file.stem)
    try:
        target = resolve_mutation(reflector, mutation_name)
    except LoadError as e:
        progress(f"[red]✘ {escape(str(e))}[/red]")
        return FileResult(str(file), mutation_name, mutation_error=str(e))

    description = target.field.description or "(no description)"
    progress(f"Using mutation [yellow]{mutation_name}[/yellow]: {escape(description)}")

    try:
        records = _read(file, progress)
    except ParseFailed as e:
        return FileResult(str(file), mutation_name, data_read_error=str(e))

    def warn(msg: str) -> None:
        progress(f"[yellow]⚠ {escape(msg)}[/yellow]")

    upload = await upload_records(
        client,
        reflector,
        target,
        records,
        batch_size=options.batch_size,
        source=str(file),
        on_progress=progress,
        on_warning=warn,
    )
    return FileResult.from_upload(str(file), upload)


def _read(file: Path, progress: Callable[[str], None]) -> list[Record]:
    progress(f"Parsing file [yellow]{escape(str(file))}[/yellow]")
    try:
        records = read_records(file)
    except ParseFailed as e:
        progress(f"[red]✘ {escape(str(e))}[/red]")
        raise
    progress(f"[green]Done parsing {escape(str(file))} entities: {len(records)}[/green]")
    return records
