"""Schema reflection for the load pipeline.

Wraps a graphql-core ``GraphQLSchema`` and answers the questions the
pipeline asks about it: which type a file maps to, what a field on that
type looks like (list? object? non-null?), and which input type a mutation
takes. Field lookups are cached for the lifetime of one reflector, which
the driver creates once per command invocation.

Whether a field counts as a *list* is a pluggable predicate: some schemas
model collections as ``[T]`` wrappers, others as paginated ``TConnection``
types.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any

from graphql import (
    GraphQLError,
    GraphQLField,
    GraphQLInputObjectType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLType,
    build_client_schema,
    build_schema,
    get_named_type,
    get_nullable_type,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_list_type,
    is_non_null_type,
    is_object_type,
    is_union_type,
)

from gqlload.commands.load.errors import (
    InputArgumentMissing,
    MutationNotFound,
    SchemaLoadError,
    TypeNotFound,
    UndefinedField,
)

ListPredicate = Callable[[GraphQLType], bool]

LIST_RULES = ("wrapped", "suffix", "either")
DEFAULT_LIST_SUFFIXES = ("Connection",)


# -- List predicates -----------------------------------------------------------


def wrapped_list(type_: GraphQLType) -> bool:
    """True when the declared type is a GraphQL list (``[T]`` / ``[T]!``)."""
    return is_list_type(get_nullable_type(type_))  # type: ignore[arg-type]


def name_suffix_list(suffixes: Sequence[str] = DEFAULT_LIST_SUFFIXES) -> ListPredicate:
    """Build a predicate matching named types that end with a collection marker."""
    markers = tuple(suffixes)

    def predicate(type_: GraphQLType) -> bool:
        return get_named_type(type_).name.endswith(markers)

    return predicate


def either(*predicates: ListPredicate) -> ListPredicate:
    """Combine predicates: a field is a list if any of them says so."""

    def predicate(type_: GraphQLType) -> bool:
        return any(p(type_) for p in predicates)

    return predicate


def list_predicate(
    rule: str = "wrapped", suffixes: Sequence[str] = DEFAULT_LIST_SUFFIXES
) -> ListPredicate:
    """Resolve a ``--list-rule`` name to a predicate."""
    if rule == "wrapped":
        return wrapped_list
    if rule == "suffix":
        return name_suffix_list(suffixes)
    if rule == "either":
        return either(wrapped_list, name_suffix_list(suffixes))
    raise ValueError(f"Unknown list rule '{rule}'. Expected one of {LIST_RULES}")


# -- Schema loading ------------------------------------------------------------


def load_schema(path: str | Path) -> GraphQLSchema:
    """Build a schema from an SDL file or an introspection result (.json)."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise SchemaLoadError(f"Cannot read schema {path}: {e}", {"file": str(path)}) from e

    try:
        if path.suffix.lower() == ".json":
            data: Any = json.loads(text)
            if isinstance(data, dict) and "data" in data:
                data = data["data"]
            return build_client_schema(data)
        return build_schema(text)
    except (GraphQLError, json.JSONDecodeError, TypeError, KeyError) as e:
        raise SchemaLoadError(f"Invalid schema {path}: {e}", {"file": str(path)}) from e


# -- Reflection ----------------------------------------------------------------


@dataclass(frozen=True)
class FieldInfo:
    """Resolved metadata for one field of an object or input type."""

    name: str
    type: GraphQLType
    named_type: GraphQLNamedType
    is_list: bool
    is_non_null: bool
    is_object: bool

    @property
    def type_name(self) -> str:
        return self.named_type.name

    @property
    def is_enum(self) -> bool:
        return is_enum_type(self.named_type)

    @property
    def is_input_object(self) -> bool:
        return is_input_object_type(self.named_type)


class SchemaReflector:
    """Type and field lookups over one schema, cached per (type, field)."""

    def __init__(self, schema: GraphQLSchema, is_list: ListPredicate = wrapped_list):
        self.schema = schema
        self._is_list = is_list
        self._cache: dict[tuple[str, str], FieldInfo] = {}

    def get_type(self, name: str) -> GraphQLNamedType | None:
        """Return the named type, or None when the schema does not define it."""
        return self.schema.get_type(name)

    def resolve_node_type(self, name: str) -> GraphQLObjectType:
        """Return the object type records of *name* convert to.

        It must exist and declare an ``id`` field.
        """
        type_ = self.schema.get_type(name)
        if type_ is None or not is_object_type(type_):
            raise TypeNotFound(f"Type {name} not found.", {"type": name})
        if "id" not in type_.fields:
            raise TypeNotFound(f"Type {name} has no id field.", {"type": name})
        return type_

    def has_field(self, type_: GraphQLNamedType, field_name: str) -> bool:
        fields = getattr(type_, "fields", None) or {}
        return field_name in fields

    def get_field(self, type_: GraphQLNamedType, field_name: str) -> FieldInfo:
        """Return field metadata, raising UndefinedField if the type lacks it."""
        key = (type_.name, field_name)
        info = self._cache.get(key)
        if info is not None:
            return info

        fields = getattr(type_, "fields", None) or {}
        field = fields.get(field_name)
        if field is None:
            raise UndefinedField(
                f"Undefined field: {type_.name}.{field_name}",
                {"type": type_.name, "field": field_name},
            )

        named = get_named_type(field.type)
        info = FieldInfo(
            name=field_name,
            type=field.type,
            named_type=named,
            is_list=self._is_list(field.type),
            is_non_null=is_non_null_type(field.type),
            is_object=is_object_type(named) or is_interface_type(named) or is_union_type(named),
        )
        self._cache[key] = info
        return info

    def get_mutation_field(self, mutation_name: str) -> GraphQLField:
        """Return the mutation field definition by name."""
        mutation_type = self.schema.mutation_type
        if mutation_type is None:
            raise MutationNotFound(
                "No mutation type in schema.", {"mutation": mutation_name}
            )
        field = mutation_type.fields.get(mutation_name)
        if field is None:
            raise MutationNotFound(
                f'Mutation "{mutation_name}" not found.', {"mutation": mutation_name}
            )
        return field

    def get_input_type(
        self, mutation_field: GraphQLField, mutation_name: str = ""
    ) -> GraphQLInputObjectType:
        """Return the input object type of the mutation's single ``input`` argument."""
        arg = mutation_field.args.get("input")
        named = get_named_type(arg.type) if arg is not None else None
        if arg is None or not is_input_object_type(named):
            raise InputArgumentMissing(
                f"Input argument missing for {mutation_name or 'mutation'}.",
                {"mutation": mutation_name, "arguments": sorted(mutation_field.args)},
            )
        return named  # type: ignore[return-value]

    def input_is_list(self, mutation_field: GraphQLField) -> bool:
        """Whether the mutation takes an array of inputs in one call."""
        arg = mutation_field.args["input"]
        return wrapped_list(arg.type)
