"""Convert entity records to Normalized Document Format (NDF).

Each record is classified field by field into:

* a node     ``{"_typeName", "id", <scalar fields>}``  (always emitted)
* a list     ``{"_typeName", "id", <list fields>}``    (when it has list fields)
* relations  ``[{"_typeName", "id", "fieldName"}, {"_typeName", "id"}]``,
  one per (field, target id)

Output accumulates in memory and is flushed every ``flush_every`` classified
records and at end of file to ``<root>/{nodes,lists,relations}/NNNNN.json``.
The file counter belongs to the NdfWriter and keeps increasing across input
files of one run.

Record-level problems (missing or duplicate id, unknown field, shape
mismatch, invalid date) skip the record and are counted; they never abort
the file.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from graphql import GraphQLNamedType

from gqlload.commands.load.coerce import DateMode, WarningCallback
from gqlload.commands.load.errors import LoadError
from gqlload.commands.load.ids import IdTable
from gqlload.commands.load.schema import SchemaReflector
from gqlload.commands.load.values import (
    FieldValue,
    RelationValue,
    ScalarListValue,
    ScalarValue,
    classify_record,
)
from gqlload.formats.ndf import VALUE_TYPES, write_ndf_file

DEFAULT_FLUSH_EVERY = 10_000


class NdfWriter:
    """Writes numbered generations of NDF files under one output root."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.generation = 0

    def write(
        self,
        nodes: list[dict[str, Any]],
        lists: list[dict[str, Any]],
        relations: list[list[dict[str, Any]]],
    ) -> int | None:
        """Write the non-empty buffers as the next generation.

        Returns the generation number, or None when there was nothing to write.
        """
        buffers: dict[str, list[Any]] = {
            "nodes": nodes,
            "lists": lists,
            "relations": relations,
        }
        if not any(buffers.values()):
            return None

        self.generation += 1
        name = f"{self.generation:05d}.json"
        for value_type in VALUE_TYPES:
            values = buffers[value_type]
            if values:
                write_ndf_file(self.root / value_type / name, value_type, values)
        return self.generation


@dataclass
class NdfResult:
    """Outcome of converting one input file."""

    source: str
    type_name: str
    records: int = 0
    converted: int = 0
    nodes: int = 0
    lists: int = 0
    relations: int = 0
    generations: list[int] = field(default_factory=lambda: list[int]())
    errors: list[str] = field(default_factory=lambda: list[str]())

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class NdfConverter:
    """Classifies records of one entity type and feeds an NdfWriter."""

    def __init__(
        self,
        reflector: SchemaReflector,
        type_: GraphQLNamedType,
        writer: NdfWriter,
        *,
        flush_every: int = DEFAULT_FLUSH_EVERY,
        date_mode: DateMode = DateMode.ISO,
        on_warning: WarningCallback | None = None,
    ):
        self.reflector = reflector
        self.type = type_
        self.writer = writer
        self.flush_every = flush_every
        self.date_mode = date_mode
        self.on_warning = on_warning

        self._nodes: list[dict[str, Any]] = []
        self._lists: list[dict[str, Any]] = []
        self._relations: list[list[dict[str, Any]]] = []

    def convert(self, records: Iterable[dict[str, Any]], source: str = "") -> NdfResult:
        """Convert all records of one file. The dedupe table lives for this call only."""
        result = NdfResult(source=source, type_name=self.type.name)
        ids = IdTable()

        for index, record in enumerate(records):
            result.records += 1
            raw_id = record.get("id")
            try:
                entity_id = ids.check(raw_id)
                values = classify_record(
                    self.reflector,
                    self.type,
                    record,
                    date_mode=self.date_mode,
                    on_warning=self.on_warning,
                )
            except LoadError as e:
                result.errors.append(f"record {index + 1}: {e}")
                continue

            ids.add(raw_id, entity_id)
            self._accumulate(entity_id, values, result)
            result.converted += 1

            if self.flush_every and result.converted % self.flush_every == 0:
                self._flush(result)

        self._flush(result)
        return result

    def _accumulate(self, entity_id: str, values: list[FieldValue], result: NdfResult) -> None:
        type_name = self.type.name
        node: dict[str, Any] = {"_typeName": type_name, "id": entity_id}
        list_values: dict[str, Any] = {}

        for value in values:
            if isinstance(value, ScalarValue):
                node[value.field] = value.value
            elif isinstance(value, ScalarListValue):
                list_values[value.field] = value.values
            elif isinstance(value, RelationValue):
                for to_id in value.ids:
                    self._relations.append(
                        [
                            {"_typeName": type_name, "id": entity_id, "fieldName": value.field},
                            {"_typeName": value.to_type, "id": to_id},
                        ]
                    )
                    result.relations += 1
            else:
                raise TypeError(f"Unexpected value for NDF output: {value!r}")

        self._nodes.append(node)
        result.nodes += 1
        if list_values:
            self._lists.append({"_typeName": type_name, "id": entity_id, **list_values})
            result.lists += 1

    def _flush(self, result: NdfResult) -> None:
        generation = self.writer.write(self._nodes, self._lists, self._relations)
        if generation is not None:
            result.generations.append(generation)
        self._nodes = []
        self._lists = []
        self._relations = []
