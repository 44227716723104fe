from __future__ import annotations

import math
from typing import Sequence, Union

from adapters.base import COMMON_TEMPLATES, DatabaseAdapter, DialectKind
from adapters.factory import get_adapter
from adapters.models import Column


# Substrings of type names whose literals must be single-quoted in UPDATE statements.
STRING_TYPE_MARKERS = ("char", "text", "date", "time", "year")


def _as_adapter(dialect: Union[str, DialectKind, DatabaseAdapter]) -> DatabaseAdapter:
    if isinstance(dialect, DatabaseAdapter):
        return dialect
    return get_adapter(dialect)


def requires_quoting(sql_type: str) -> bool:
    lowered = (sql_type or "").lower()
    return any(marker in lowered for marker in STRING_TYPE_MARKERS)


def quote_literal(value: str, sql_type: str) -> str:
    if not requires_quoting(sql_type):
        return value
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


def build_select_all(
    columns: Sequence[Column],
    dialect: Union[str, DialectKind, DatabaseAdapter],
    schema: str,
    table: str,
    per_page: int,
    offset: int,
) -> str:
    if offset < 0:
        raise ValueError("offset must not be negative")
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    adapter = _as_adapter(dialect)
    column_list = ", ".join(adapter.quote_identifier(col.field) for col in columns)
    return adapter.template("select_all_with_limit").format(
        columns=column_list,
        table=adapter.qualified_name(schema, table),
        limit=int(per_page),
        offset=int(offset),
    )


def build_update(
    table: str,
    column: str,
    new_value: str,
    key_column: str,
    key_value: str,
    column_type: str,
    key_column_type: str,
) -> str:
    return COMMON_TEMPLATES["update_row"].format(
        table=table,
        column=column,
        value=quote_literal(new_value, column_type),
        key_column=key_column,
        key_value=quote_literal(key_value, key_column_type),
    )


def page_offset(page: int, per_page: int) -> int:
    return (max(int(page), 1) - 1) * int(per_page)


def total_pages(total_rows: int, per_page: int) -> int:
    """Page count shown to the browser.

    Rounds half away from zero rather than taking the ceiling, so 251 rows at
    50 per page is 5 pages; never less than 1.
    """
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    ratio = total_rows / per_page
    if ratio < 1:
        return 1
    return int(math.floor(ratio + 0.5))
