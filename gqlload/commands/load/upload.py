"""Upload records through a mutation, in sequential fixed-size batches."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from rich.markup import escape

from gqlload.client import TransportError
from gqlload.commands.load.coerce import WarningCallback
from gqlload.commands.load.errors import LoadError
from gqlload.commands.load.mutation import MutationTarget, build_mutation
from gqlload.commands.load.schema import SchemaReflector
from gqlload.helpers.console import truncate

DEFAULT_BATCH_SIZE = 1_000_000


class GraphQLTransport(Protocol):
    async def request(self, query: str) -> dict[str, Any]: ...


class BatchStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"  # accepted, but some results came back null
    FAILED = "failed"


@dataclass
class BatchResult:
    start: int
    end: int
    status: BatchStatus
    message: str = ""


@dataclass
class UploadResult:
    """Outcome of uploading one input file."""

    source: str
    mutation: str
    records: int = 0
    batches: list[BatchResult] = field(default_factory=lambda: list[BatchResult]())
    mutation_error: str | None = None

    @property
    def upload_errors(self) -> int:
        return sum(1 for b in self.batches if b.status is BatchStatus.FAILED)

    @property
    def partial(self) -> bool:
        return any(b.status is BatchStatus.PARTIAL for b in self.batches)

    @property
    def succeeded(self) -> bool:
        return self.mutation_error is None and self.upload_errors == 0


def batch_bounds(total: int, batch_size: int) -> list[tuple[int, int]]:
    """Contiguous ``[start, end)`` slices of at most *batch_size* records."""
    if batch_size < 1:
        raise ValueError(f"batch size must be positive, got {batch_size}")
    return [(start, min(start + batch_size, total)) for start in range(0, total, batch_size)]


async def upload_records(
    client: GraphQLTransport,
    reflector: SchemaReflector,
    target: MutationTarget,
    records: Sequence[dict[str, Any]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    source: str = "",
    on_progress: Callable[[str], None] | None = None,
    on_warning: WarningCallback | None = None,
) -> UploadResult:
    """Build and send one mutation per batch, strictly in order.

    Each batch is built right before it is sent. A record that cannot be
    built (unknown field, shape mismatch, invalid value) records a mutation
    error for the file and aborts the remaining batches; batches already
    sent stay in ``result.batches``. Transport failures and GraphQL
    ``errors`` mark the batch failed and move on to the next one; nothing
    is retried.
    """

    def progress(msg: str) -> None:
        if on_progress:
            on_progress(msg)

    result = UploadResult(source=source, mutation=target.name, records=len(records))
    total = len(records)
    bounds = batch_bounds(total, batch_size)

    for start, end in bounds:
        try:
            document = build_mutation(
                reflector, target, records[start:end], on_warning=on_warning
            )
        except LoadError as e:
            result.mutation_error = str(e)
            progress(f"[red]✘ Cannot build {target.name}: {escape(str(e))}[/red]")
            return result

        if len(bounds) > 1:
            progress(f"Uploading batch {start}-{end} of {total}")
        else:
            progress("Uploading")

        try:
            response = await client.request(document)
        except (TransportError, OSError) as e:
            message = describe_transport_error(e)
            result.batches.append(BatchResult(start, end, BatchStatus.FAILED, message))
            progress(f"[red]✘ Exception: [yellow]{escape(message)}[/yellow][/red]")
            continue

        batch = classify_response(start, end, response)
        result.batches.append(batch)
        if batch.status is BatchStatus.FAILED:
            progress(f"[red]✘ Call failed: {escape(batch.message)}[/red]")
        elif batch.status is BatchStatus.PARTIAL:
            progress(
                f"[yellow]✔ Call succeeded with null results: {escape(batch.message)}[/yellow]"
            )
        else:
            progress(
                f"[green]✔ Call succeeded: [yellow]{escape(batch.message)}[/yellow][/green]"
            )

    return result


def classify_response(start: int, end: int, response: dict[str, Any]) -> BatchResult:
    """Classify a decoded GraphQL response for one batch."""
    errors = response.get("errors")
    if errors:
        return BatchResult(start, end, BatchStatus.FAILED, _error_messages(errors))

    data = response.get("data")
    if not isinstance(data, dict):
        return BatchResult(start, end, BatchStatus.FAILED, "No data in response")

    nulls = [name for name, value in data.items() if _has_null(value)]
    if nulls:
        return BatchResult(
            start, end, BatchStatus.PARTIAL, f"null results for {', '.join(nulls)}"
        )
    return BatchResult(start, end, BatchStatus.SUCCESS, truncate(str(data), 200))


def describe_transport_error(error: Exception) -> str:
    """Pick the most informative message from a failed request.

    Prefers the structured GraphQL ``errors`` list, then a single ``error``
    object, then the exception text.
    """
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        errors = response.get("errors")
        if isinstance(errors, list) and errors:
            return _error_messages(errors)
        single = response.get("error")
        if single:
            status = getattr(error, "status", None)
            return f"GraphQL Error: {single}, status: {status}"
    return truncate(str(error) or type(error).__name__, 75)


def _error_messages(errors: Any) -> str:
    if not isinstance(errors, list):
        return truncate(str(errors), 75)
    messages = [
        truncate(str(e.get("message", e)) if isinstance(e, dict) else str(e), 75)
        for e in errors
    ]
    if len(messages) == 1:
        return messages[0]
    return "[" + ", ".join(messages) + "]"


def _has_null(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, list):
        return any(v is None for v in value)
    return False
