"""Read CSV and JSON entity files into ordered lists of records."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any

from gqlload.commands.load.errors import ParseFailed

Record = dict[str, Any]

SUPPORTED_EXTENSIONS = (".csv", ".json")


def is_supported(path: str | Path) -> bool:
    """Whether the file extension is one the loader reads (case-insensitive)."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def find_data_files(root: str | Path) -> list[Path]:
    """List supported files under *root*, recursively, in sorted order.

    A file path is returned as-is when it is supported, and dropped when not.
    """
    root = Path(root)
    if root.is_file():
        return [root] if is_supported(root) else []
    return sorted(p for p in root.rglob("*") if p.is_file() and is_supported(p))


def read_records(path: str | Path) -> list[Record]:
    """Read all records of a CSV or JSON file into memory, preserving order."""
    path = Path(path)
    ext = path.suffix.lower()
    text = _read_text(path)
    if ext == ".csv":
        return parse_csv(text, source=str(path))
    if ext == ".json":
        return parse_json(text, source=str(path))
    raise ParseFailed(f"Unsupported file type: {path}", {"file": str(path)})


def _read_text(path: Path) -> str:
    """Read a UTF-8 file, stripping a leading BOM."""
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseFailed(f"Cannot read {path}: {e}", {"file": str(path)}) from e
    if not text.strip():
        raise ParseFailed(f"No text in file: {path}", {"file": str(path)})
    return text


def parse_csv(text: str, source: str = "<csv>") -> list[Record]:
    """Parse CSV text with a header row. Blank lines are skipped.

    Raises ParseFailed on malformed quoting or on rows with more cells than
    the header declares.
    """
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        header = next(reader, None)
        if not header:
            raise ParseFailed(f"Missing CSV header in {source}", {"file": source, "row": 1})
        header = [h.strip() for h in header]

        records: list[Record] = []
        for row in reader:
            if not row or all(not cell.strip() for cell in row):
                continue
            if len(row) > len(header):
                raise ParseFailed(
                    f"Too many fields in {source} row {reader.line_num}: "
                    f"expected {len(header)}, got {len(row)}",
                    {"file": source, "row": reader.line_num, "column": len(header) + 1},
                )
            records.append(dict(zip(header, row)))
    except csv.Error as e:
        raise ParseFailed(
            f"Error parsing CSV file {source} row {reader.line_num}: {e}",
            {"file": source, "row": reader.line_num},
        ) from e
    return records


def parse_json(text: str, source: str = "<json>") -> list[Record]:
    """Parse a JSON object (one record) or array of objects."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailed(
            f"Error parsing {source} as JSON: {e.msg}",
            {"file": source, "row": e.lineno, "column": e.colno},
        ) from e

    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        for i, item in enumerate(data):
            if not isinstance(item, dict):
                raise ParseFailed(
                    f"Expected an object at index {i} of {source}, got {type(item).__name__}",
                    {"file": source, "index": i},
                )
        return data
    raise ParseFailed(
        f"Expected an object or array of objects in {source}, got {type(data).__name__}",
        {"file": source},
    )
