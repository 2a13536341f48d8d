"""Build one composite mutation document for a batch of records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from graphql import (
    GraphQLField,
    GraphQLInputObjectType,
    get_named_type,
    is_interface_type,
    is_object_type,
)

from gqlload.commands.load.coerce import DateMode, WarningCallback, to_literal
from gqlload.commands.load.ids import is_missing, normalize_id
from gqlload.commands.load.schema import SchemaReflector
from gqlload.commands.load.values import (
    FieldValue,
    ObjectValue,
    RelationValue,
    ScalarListValue,
    ScalarValue,
    classify_record,
)


@dataclass(frozen=True)
class MutationTarget:
    """A resolved mutation: its definition, input type and call shape."""

    name: str
    field: GraphQLField
    input_type: GraphQLInputObjectType
    input_is_list: bool


def resolve_mutation(reflector: SchemaReflector, mutation_name: str) -> MutationTarget:
    """Look up a mutation and its ``input`` argument type.

    Raises MutationNotFound or InputArgumentMissing.
    """
    field = reflector.get_mutation_field(mutation_name)
    input_type = reflector.get_input_type(field, mutation_name)
    return MutationTarget(
        name=mutation_name,
        field=field,
        input_type=input_type,
        input_is_list=reflector.input_is_list(field),
    )


def build_mutation(
    reflector: SchemaReflector,
    target: MutationTarget,
    records: Sequence[dict[str, Any]],
    *,
    date_mode: DateMode = DateMode.RAW,
    on_warning: WarningCallback | None = None,
) -> str:
    """Render a mutation document carrying every record of the batch.

    With a list-typed ``input`` the batch becomes one call taking an array;
    otherwise each record gets its own aliased call (``m0: ...``, ``m1: ...``)
    in the same document. Any field error fails the whole batch.
    """
    objects = [
        render_object(
            classify_record(
                reflector,
                target.input_type,
                record,
                date_mode=date_mode,
                on_warning=on_warning,
            ),
            _record_id(reflector, target.input_type, record),
        )
        for record in records
    ]
    selection = _selection_set(target.field)

    if target.input_is_list:
        return f"mutation {{ {target.name}(input: [{', '.join(objects)}]){selection} }}"

    calls = " ".join(
        f"m{i}: {target.name}(input: {obj}){selection}" for i, obj in enumerate(objects)
    )
    return f"mutation {{ {calls} }}"


def render_object(values: Sequence[FieldValue], record_id: str | None = None) -> str:
    """Render classified fields as a GraphQL input object literal."""
    parts: list[str] = []
    if record_id is not None:
        parts.append(f"id: {to_literal(record_id)}")
    parts.extend(f"{v.field}: {render_value(v)}" for v in values)
    return "{" + ", ".join(parts) + "}"


def render_value(value: FieldValue) -> str:
    if isinstance(value, ScalarValue):
        return to_literal(value.value, value.kind)
    if isinstance(value, ScalarListValue):
        if not value.values:
            return "null"
        return "[" + ", ".join(to_literal(v, value.kind) for v in value.values) + "]"
    if isinstance(value, ObjectValue):
        if value.items is None:
            return "null"
        rendered = [render_object(item) for item in value.items]
        if value.is_list:
            return "[" + ", ".join(rendered) + "]"
        return rendered[0]
    if isinstance(value, RelationValue):
        if value.is_list:
            return "[" + ", ".join(to_literal(i) for i in value.ids) + "]"
        return to_literal(value.ids[0]) if value.ids else "null"
    raise TypeError(f"Unsupported field value: {value!r}")


def _record_id(
    reflector: SchemaReflector, input_type: GraphQLInputObjectType, record: dict[str, Any]
) -> str | None:
    raw = record.get("id")
    if is_missing(raw) or not reflector.has_field(input_type, "id"):
        return None
    return normalize_id(raw)


def _selection_set(field: GraphQLField) -> str:
    """Minimal selection for object-returning mutations."""
    named = get_named_type(field.type)
    if not (is_object_type(named) or is_interface_type(named)):
        return ""
    if "id" in named.fields:  # type: ignore[union-attr]
        return " { id }"
    return " { __typename }"
