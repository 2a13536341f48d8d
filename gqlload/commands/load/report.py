"""Per-file results, the run-level accumulator, and the end-of-run report."""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from gqlload.commands.load.ndf import NdfResult
from gqlload.commands.load.upload import UploadResult


@dataclass
class FileResult:
    """What happened to one input file. Returned by the per-file handlers."""

    file: str
    target: str = ""  # mutation or type name
    mutation_error: str | None = None
    data_read_error: str | None = None
    ndf_errors: list[str] = field(default_factory=lambda: list[str]())
    upload_errors: int = 0
    partial: bool = False

    @property
    def succeeded(self) -> bool:
        return (
            self.mutation_error is None
            and self.data_read_error is None
            and not self.ndf_errors
            and self.upload_errors == 0
        )

    @classmethod
    def from_upload(cls, file: str, upload: UploadResult) -> FileResult:
        return cls(
            file=file,
            target=upload.mutation,
            mutation_error=upload.mutation_error,
            upload_errors=upload.upload_errors,
            partial=upload.partial,
        )

    @classmethod
    def from_ndf(cls, file: str, ndf: NdfResult) -> FileResult:
        return cls(file=file, target=ndf.type_name, ndf_errors=list(ndf.errors))


@dataclass
class FileError:
    file: str
    target: str = ""
    reason: str = ""


@dataclass
class LoadReport:
    """Aggregate of every FileResult in one run."""

    total: int = 0
    succeed: int = 0
    mutation_errors: list[FileError] = field(default_factory=lambda: list[FileError]())
    data_read_errors: list[FileError] = field(default_factory=lambda: list[FileError]())
    ndf_errors: dict[str, list[str]] = field(default_factory=lambda: dict[str, list[str]]())
    upload_errors: dict[str, int] = field(default_factory=lambda: dict[str, int]())
    partial_files: list[str] = field(default_factory=lambda: list[str]())

    def merge(self, result: FileResult) -> LoadReport:
        self.total += 1
        if result.succeeded:
            self.succeed += 1
        if result.mutation_error is not None:
            self.mutation_errors.append(
                FileError(result.file, result.target, result.mutation_error)
            )
        if result.data_read_error is not None:
            self.data_read_errors.append(FileError(result.file, reason=result.data_read_error))
        if result.ndf_errors:
            self.ndf_errors[result.file] = list(result.ndf_errors)
        if result.upload_errors:
            self.upload_errors[result.file] = result.upload_errors
        if result.partial:
            self.partial_files.append(result.file)
        return self

    @property
    def error_count(self) -> int:
        return (
            len(self.mutation_errors)
            + len(self.data_read_errors)
            + len(self.ndf_errors)
            + len(self.upload_errors)
        )


def print_report(report: LoadReport, console: Console) -> None:
    """Print the end-of-run summary."""
    console.print("[green]" + "-" * 56 + "[/green]")

    if not report.error_count:
        console.print("[green]✔ Total success[/green]")
        _print_partial(report, console)
        return

    console.print(
        f"[green]✔ {report.succeed} of {report.total} json and csv files "
        "processed successfully[/green]"
    )
    console.print(
        f"[red]✘ {report.error_count} of {report.total} files had issues:[/red]"
    )

    if report.mutation_errors:
        console.print(
            f"[red]  {len(report.mutation_errors)} had issues finding or creating "
            "the mutation or type[/red]"
        )
        for e in report.mutation_errors:
            console.print(
                f"    [yellow]File[/yellow] {escape(e.file)} [yellow]with[/yellow] "
                f"{escape(e.target)}: {escape(e.reason)}",
                highlight=False,
            )

    if report.data_read_errors:
        console.print(
            f"[red]  {len(report.data_read_errors)} had issues loading the data from disk[/red]"
        )
        for e in report.data_read_errors:
            console.print(
                f"    [yellow]File[/yellow] {escape(e.file)}: {escape(e.reason)}",
                highlight=False,
            )

    if report.ndf_errors:
        console.print(f"[red]  {len(report.ndf_errors)} had issues converting to NDF[/red]")
        for file, messages in report.ndf_errors.items():
            console.print(
                f"    [yellow]File[/yellow] {escape(file)} [yellow]with[/yellow] "
                f"{len(messages)} [yellow]record errors[/yellow]",
                highlight=False,
            )
            for msg in messages:
                console.print(f"      {msg}", highlight=False, markup=False)

    if report.upload_errors:
        console.print(f"[red]  {len(report.upload_errors)} had issues uploading the data[/red]")
        for file, count in report.upload_errors.items():
            console.print(
                f"    [yellow]File[/yellow] {escape(file)} [yellow]in[/yellow] {count} "
                "[yellow]batches[/yellow]",
                highlight=False,
            )

    _print_partial(report, console)
    console.print(
        "[red]For more information on the errors please look through the full "
        "output of the command[/red]"
    )


def _print_partial(report: LoadReport, console: Console) -> None:
    if not report.partial_files:
        return
    console.print(
        f"[yellow]  {len(report.partial_files)} returned null results for some "
        "mutations[/yellow]"
    )
    for file in report.partial_files:
        console.print(f"    [yellow]File[/yellow] {escape(file)}", highlight=False)
