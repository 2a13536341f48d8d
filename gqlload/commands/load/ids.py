"""Fixed-length identifier normalization and per-file duplicate detection."""

from __future__ import annotations

import base64
import hashlib
from typing import Any

from gqlload.commands.load.errors import DuplicateId, MissingId

MAX_ID_LENGTH = 25


def normalize_id(raw: Any) -> str:
    """Map an external id to at most 25 characters.

    Short ids pass through unchanged. Longer ids are replaced by a base32
    encoding of their SHA-256 digest, truncated to the limit, so the result
    is stable across runs and independent of processing order.
    """
    raw_id = str(raw)
    if len(raw_id) <= MAX_ID_LENGTH:
        return raw_id
    digest = hashlib.sha256(raw_id.encode("utf-8")).digest()
    return base64.b32encode(digest).decode("ascii").lower()[:MAX_ID_LENGTH]


def is_missing(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


class IdTable:
    """Normalized ids seen in one input file.

    ``check`` raises DuplicateId when the normalized form was already added,
    whether by the same raw id or by a different one that hashes to the same
    value. ``add`` registers it once the record has been accepted.
    """

    def __init__(self) -> None:
        self._seen: dict[str, str] = {}

    def add(self, raw: Any, normalized: str) -> None:
        self._seen[normalized] = str(raw)

    def check(self, raw: Any) -> str:
        if is_missing(raw):
            raise MissingId("Entity missing id")
        raw_id = str(raw)
        normalized = normalize_id(raw_id)
        previous = self._seen.get(normalized)
        if previous is not None:
            if previous == raw_id:
                raise DuplicateId(
                    f"Duplicate id: {raw_id}", {"id": raw_id, "normalized": normalized}
                )
            raise DuplicateId(
                f"Id collision: {raw_id} and {previous} both normalize to {normalized}",
                {"id": raw_id, "other": previous, "normalized": normalized},
            )
        return normalized
