"""Encoding and decoding of persisted selections.

A selection is persisted as one flat string: compact JSON for a record or a
list of records, the bare identifier in id-only mode, and the empty string
for "nothing selected". Decoding never raises; malformed input counts as an
empty selection.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

Record = dict[str, Any]


def record_key(record: Mapping[str, Any]) -> str:
    """Identity of a record. ``1`` and ``"1"`` refer to the same entry."""
    return str(record["id"])


def is_record(value: Any) -> bool:
    return isinstance(value, Mapping) and value.get("id") not in (None, "")


def encode_value(selection: Any) -> str:
    if selection is None or selection == "" or selection == []:
        return ""
    if isinstance(selection, (Mapping, list, tuple)):
        if isinstance(selection, tuple):
            selection = list(selection)
        return json.dumps(selection, separators=(",", ":"))
    return str(selection)


def _load(raw: Any) -> Any:
    if isinstance(raw, (Mapping, list)):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed persisted value %r", raw)
        return None


def decode_record(raw: Any) -> Record | None:
    data = _load(raw)
    if data is None:
        return None
    if not is_record(data):
        logger.warning("Persisted value is not a search result record: %r", raw)
        return None
    return dict(data)


def decode_records(raw: Any) -> list[Record] | None:
    data = _load(raw)
    if data is None:
        return None
    if not isinstance(data, list):
        logger.warning("Persisted value is not a list of records: %r", raw)
        return None
    records = []
    for item in data:
        if is_record(item):
            records.append(dict(item))
        else:
            logger.warning("Dropping persisted entry without id: %r", item)
    return dedupe_records(records)


def decode_identifier(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return record_key(raw) if is_record(raw) else None
    value = str(raw).strip()
    return value or None


def dedupe_records(records: Iterable[Mapping[str, Any]]) -> list[Record]:
    """Keep the first occurrence of every identifier, preserving order."""
    seen: set[str] = set()
    unique: list[Record] = []
    for record in records:
        key = record_key(record)
        if key in seen:
            continue
        seen.add(key)
        unique.append(dict(record))
    return unique
