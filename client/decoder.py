from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence


def decode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, memoryview):
        return value.tobytes().decode("utf-8", errors="replace")
    return value


def decode(column_names: Sequence[str], raw_rows: Iterable[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Turn driver rows into ordered column -> value dicts; binary cells become text."""
    rows: List[Dict[str, Any]] = []
    for raw in raw_rows:
        rows.append({column_names[i]: decode_value(raw[i]) for i in range(len(column_names))})
    return rows


def column_names(cursor: Any) -> List[str]:
    if not cursor.description:
        return []
    return [str(desc[0]) for desc in cursor.description]


def fetch_decoded(cursor: Any) -> List[Dict[str, Any]]:
    names = column_names(cursor)
    if not names:
        return []
    return decode(names, cursor.fetchall())
