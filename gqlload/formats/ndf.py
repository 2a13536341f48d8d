"""Pydantic model for Normalized Document Format (NDF) output files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ValueType = Literal["nodes", "lists", "relations"]

VALUE_TYPES: tuple[ValueType, ...] = ("nodes", "lists", "relations")


class NdfFile(BaseModel):
    """One ``{"valueType": ..., "values": [...]}`` document."""

    model_config = ConfigDict(populate_by_name=True)

    value_type: ValueType = Field(alias="valueType")
    values: list[Any] = Field(default_factory=list)


def write_ndf_file(path: Path, value_type: ValueType, values: list[Any]) -> None:
    """Write an NDF document, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = NdfFile(value_type=value_type, values=values)
    path.write_text(doc.model_dump_json(by_alias=True), encoding="utf-8")
