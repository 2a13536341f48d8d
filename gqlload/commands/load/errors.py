"""Error types raised by the load/convert pipeline."""

from __future__ import annotations

from typing import Any


class LoadError(Exception):
    """Base class for pipeline errors.

    ``details`` carries structured context (file, field, row...) for the
    end-of-run report.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


# -- Configuration errors (fatal to the current file) -------------------------


class SchemaLoadError(LoadError):
    """The schema description could not be read or built."""


class TypeNotFound(LoadError):
    """The target entity type is not defined in the schema."""


class UndefinedField(LoadError):
    """A record field has no counterpart on the target type."""


class MutationNotFound(LoadError):
    """The schema has no mutation type or no mutation with that name."""


class InputArgumentMissing(LoadError):
    """The mutation does not take exactly one argument named ``input``."""


# -- Data errors ---------------------------------------------------------------


class ParseFailed(LoadError):
    """A CSV or JSON file could not be parsed."""


# -- Per-record errors ---------------------------------------------------------


class ShapeMismatch(LoadError):
    """A collection was given for a non-list field, or the reverse."""


class CoercionError(LoadError):
    """A value could not be converted to its target scalar type."""


class MissingId(LoadError):
    """A record has no ``id``."""


class DuplicateId(LoadError):
    """A record's normalized id was already seen in the same file."""
