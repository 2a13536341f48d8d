"""Classify record fields into tagged values.

Each non-id field of a record is resolved against its schema type and turned
into one of:

* ``ScalarValue``      a coerced scalar (node property)
* ``ScalarListValue``  a list of coerced scalars (list property)
* ``RelationValue``    references to other entities by normalized id
* ``ObjectValue``      a nested input object (mutation inputs only)

The NDF converter and the mutation builder both consume these, so shape
checks and coercion rules live in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Union

from graphql import GraphQLNamedType

from gqlload.commands.load.coerce import (
    DateMode,
    ScalarKind,
    WarningCallback,
    coerce,
    scalar_kind,
)
from gqlload.commands.load.errors import CoercionError, MissingId, ShapeMismatch
from gqlload.commands.load.ids import is_missing, normalize_id
from gqlload.commands.load.schema import FieldInfo, SchemaReflector


@dataclass(frozen=True)
class ScalarValue:
    field: str
    kind: ScalarKind
    value: Any


@dataclass(frozen=True)
class ScalarListValue:
    field: str
    kind: ScalarKind
    values: list[Any] | None


@dataclass(frozen=True)
class RelationValue:
    field: str
    to_type: str
    ids: list[str]
    is_list: bool = False


@dataclass(frozen=True)
class ObjectValue:
    field: str
    items: list[list[FieldValue]] | None
    is_list: bool = False


FieldValue = Union[ScalarValue, ScalarListValue, RelationValue, ObjectValue]


def classify_record(
    reflector: SchemaReflector,
    type_: GraphQLNamedType,
    record: dict[str, Any],
    *,
    date_mode: DateMode = DateMode.ISO,
    on_warning: WarningCallback | None = None,
    include_id: bool = False,
) -> list[FieldValue]:
    """Classify the fields of *record* in record order.

    ``id`` is left out unless *include_id* is set (nested input objects).
    """
    return [
        classify_field(
            reflector,
            type_,
            name,
            raw,
            date_mode=date_mode,
            on_warning=on_warning,
        )
        for name, raw in record.items()
        if include_id or name != "id"
    ]


def classify_field(
    reflector: SchemaReflector,
    type_: GraphQLNamedType,
    field_name: str,
    raw: Any,
    *,
    date_mode: DateMode = DateMode.ISO,
    on_warning: WarningCallback | None = None,
) -> FieldValue:
    """Resolve one field and convert its raw value.

    Raises UndefinedField, ShapeMismatch, CoercionError, or MissingId for a
    relation target without an id.
    """
    info = reflector.get_field(type_, field_name)

    items: list[Any] | None = None
    if info.is_list:
        items = _as_collection(info, raw)
    elif isinstance(raw, list):
        raise ShapeMismatch(
            f"Unexpected collection for {field_name}: {info.type} => {json.dumps(raw)}",
            {"field": field_name, "type": str(info.type)},
        )

    if info.is_object:
        if info.is_list:
            targets = items or []
        else:
            targets = [] if is_missing(raw) else [raw]
        ids = [normalize_id(_target_id(info, t)) for t in targets]
        return RelationValue(field_name, info.type_name, ids, is_list=info.is_list)

    if info.is_input_object:
        objects = items if info.is_list else ([raw] if raw is not None else None)
        nested = None
        if objects is not None:
            nested = [
                classify_record(
                    reflector,
                    info.named_type,
                    _as_object(info, obj),
                    date_mode=date_mode,
                    on_warning=on_warning,
                    include_id=True,
                )
                for obj in objects
            ]
        return ObjectValue(field_name, nested, is_list=info.is_list)

    kind = scalar_kind(info.type_name, info.is_enum)
    if info.is_list:
        values = None
        if items is not None:
            values = [_coerce_scalar(info, kind, v, date_mode, on_warning) for v in items]
        return ScalarListValue(field_name, kind, values)
    return ScalarValue(field_name, kind, _coerce_scalar(info, kind, raw, date_mode, on_warning))


def _as_collection(info: FieldInfo, raw: Any) -> list[Any] | None:
    """Accept a list, a JSON array string (CSV cells), or null."""
    if raw is None:
        return None
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return decoded
    raise ShapeMismatch(
        f"Expected collection for {info.name}: {info.type} => {json.dumps(raw)}",
        {"field": info.name, "type": str(info.type)},
    )


def _as_object(info: FieldInfo, raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip().startswith("{"):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded
    raise ShapeMismatch(
        f"Expected object for {info.name}: {info.type} => {json.dumps(raw)}",
        {"field": info.name, "type": str(info.type)},
    )


def _target_id(info: FieldInfo, target: Any) -> Any:
    """Id of a relation target given either as an id or as ``{"id": ...}``."""
    target_id = target.get("id") if isinstance(target, dict) else target
    if is_missing(target_id):
        raise MissingId(
            f"Missing id for {info.name} target: {json.dumps(target, default=str)}",
            {"field": info.name, "type": info.type_name},
        )
    return target_id


def _coerce_scalar(
    info: FieldInfo,
    kind: ScalarKind,
    raw: Any,
    date_mode: DateMode,
    on_warning: WarningCallback | None,
) -> Any:
    if kind is ScalarKind.ENUM:
        if is_missing(raw):
            return None
        value = str(raw)
        if value not in info.named_type.values:  # type: ignore[attr-defined]
            raise CoercionError(
                f"Invalid {info.type_name} value for {info.name}: {value!r}",
                {"field": info.name, "type": info.type_name, "value": value},
            )
        return value

    def warn(msg: str) -> None:
        if on_warning:
            on_warning(f"{info.name}: {msg}")

    try:
        return coerce(info.type_name, raw, date_mode=date_mode, on_warning=warn)
    except CoercionError as e:
        e.details.setdefault("field", info.name)
        raise
