"""Type-directed coercion of raw file values to GraphQL scalar values.

``coerce`` turns whatever a CSV cell or JSON value holds into the canonical
Python value for a GraphQL scalar type. It does no I/O: recoverable problems
are reported through the optional ``on_warning`` callback, unrecoverable ones
(invalid dates and times) raise CoercionError. ``to_literal`` renders a
coerced value as GraphQL literal text for mutation documents.

Coercion is stable: feeding a coerced value back through ``coerce`` with the
same type yields the same value.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
import json
import math
import re
from typing import Any

from gqlload.commands.load.errors import CoercionError

WarningCallback = Callable[[str], None]


class DateMode(str, Enum):
    """How Date/DateTime values are written out."""

    ISO = "iso"  # 2020-01-05T00:00:00.000Z
    SHORT = "short"  # 2020-01-05 for Date, ISO for DateTime
    RAW = "raw"  # validated, passed through unchanged


class ScalarKind(str, Enum):
    INT = "Int"
    FLOAT = "Float"
    BOOLEAN = "Boolean"
    DATE = "Date"
    DATETIME = "DateTime"
    TIME = "Time"
    STRING = "String"
    ENUM = "Enum"


_NAMED_KINDS = {
    "Int": ScalarKind.INT,
    "Float": ScalarKind.FLOAT,
    "Boolean": ScalarKind.BOOLEAN,
    "Date": ScalarKind.DATE,
    "DateTime": ScalarKind.DATETIME,
    "Time": ScalarKind.TIME,
}

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

_TIME_RE = re.compile(
    r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d(\.\d{1,9})?)?(Z|[+-]([01]\d|2[0-3]):?[0-5]\d)?$"
)


def scalar_kind(type_name: str, is_enum: bool = False) -> ScalarKind:
    """Classify a named scalar type; unknown scalars are treated as strings."""
    if is_enum:
        return ScalarKind.ENUM
    return _NAMED_KINDS.get(type_name, ScalarKind.STRING)


def coerce(
    type_name: str,
    raw: Any,
    default: Any = None,
    *,
    date_mode: DateMode = DateMode.ISO,
    on_warning: WarningCallback | None = None,
) -> Any:
    """Convert *raw* to the value required by scalar *type_name*.

    Numbers, booleans and dates return *default* for empty input; numbers
    and booleans also for unparsable values. Other scalars return *default*
    only for None, and text passes through unchanged, empty text included.
    Raises CoercionError for invalid Date, DateTime and Time values.
    """
    kind = scalar_kind(type_name)

    if kind is ScalarKind.INT:
        return _coerce_number(raw, default, integral=True, on_warning=on_warning)
    if kind is ScalarKind.FLOAT:
        return _coerce_number(raw, default, integral=False, on_warning=on_warning)
    if kind is ScalarKind.BOOLEAN:
        return _coerce_boolean(raw, default)
    if kind is ScalarKind.TIME:
        return _coerce_time(raw, default)
    if kind in (ScalarKind.DATE, ScalarKind.DATETIME):
        return _coerce_date(kind, raw, default, date_mode)

    if raw is None:
        return default
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False)


def to_literal(value: Any, kind: ScalarKind = ScalarKind.STRING) -> str:
    """Render a coerced value as a GraphQL literal."""
    if value is None:
        return "null"
    if kind is ScalarKind.ENUM:
        return str(value)
    return json.dumps(value, ensure_ascii=False)


# -- Numbers and booleans ------------------------------------------------------


def _is_empty(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def _coerce_number(
    raw: Any, default: Any, *, integral: bool, on_warning: WarningCallback | None
) -> Any:
    if _is_empty(raw):
        return default

    number: float | int | None = None
    if isinstance(raw, bool):
        number = None
    elif isinstance(raw, int):
        number = raw
    elif isinstance(raw, float):
        number = raw if math.isfinite(raw) else None
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                number = None
        if isinstance(number, float) and not math.isfinite(number):
            number = None

    if number is None:
        if on_warning:
            type_name = "Int" if integral else "Float"
            on_warning(f"Cannot coerce {raw!r} to {type_name}, using {default!r}")
        return default

    if integral and isinstance(number, float):
        return int(number)
    return number


def _coerce_boolean(raw: Any, default: Any) -> Any:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return default


# -- Dates and times -----------------------------------------------------------


def parse_datetime(raw: Any) -> datetime:
    """Parse a calendar date/time. Naive values are taken as UTC.

    Numbers are epoch milliseconds.
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    if not isinstance(raw, str):
        raise ValueError(f"not a date: {raw!r}")

    text = raw.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ValueError(f"not a date: {raw!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def _coerce_date(kind: ScalarKind, raw: Any, default: Any, date_mode: DateMode) -> Any:
    if _is_empty(raw):
        return default
    try:
        dt = parse_datetime(raw)
    except (ValueError, OverflowError, OSError) as e:
        raise CoercionError(
            f"Invalid {kind.value}: {raw!r}", {"type": kind.value, "value": raw}
        ) from e

    if date_mode is DateMode.RAW:
        return raw
    if date_mode is DateMode.SHORT and kind is ScalarKind.DATE:
        return dt.date().isoformat()
    return format_iso(dt)


def _coerce_time(raw: Any, default: Any) -> Any:
    if _is_empty(raw):
        return default
    if not isinstance(raw, str) or not _TIME_RE.match(raw.strip()):
        raise CoercionError(f"Invalid Time: {raw!r}", {"type": "Time", "value": raw})
    return raw
