from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from adapters.base import (
    DatabaseAdapter,
    DialectKind,
    IntrospectionFailedError,
    merge_column_rows,
)
from adapters.models import KEY_FOREIGN, KEY_NONE, KEY_PRIMARY, Column, ConnectionProfile

if TYPE_CHECKING:
    from adapters.connection import DatabaseHandle


DEFAULT_SCHEMA = "main"

SQLITE_TEMPLATES: Dict[str, str] = {
    "show_databases": "PRAGMA database_list",
    "show_tables": """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name NOT LIKE 'sqlite_%'
        ORDER BY name
    """,
    "table_info": 'SELECT cid, name, type, "notnull", dflt_value, pk FROM pragma_table_info(?)',
    "foreign_key_list": 'SELECT id, seq, "table", "from", "to" FROM pragma_foreign_key_list(?)',
    "column_data_type": "SELECT type FROM pragma_table_info(?) WHERE name = ?",
    "count_rows": "SELECT COUNT(*) FROM {table}",
    "count_columns": "SELECT COUNT(*) FROM pragma_table_info(?)",
    "show_create_table": "SELECT name, sql FROM sqlite_master WHERE type = 'table' AND name = ?",
    "select_all": "SELECT * FROM {table}",
    "select_all_with_limit": "SELECT {columns} FROM {table} LIMIT {limit} OFFSET {offset}",
    "drop_table": "DROP TABLE IF EXISTS {table}",
    "truncate_table": "DELETE FROM {table}",
}


class SQLiteAdapter(DatabaseAdapter):
    kind = DialectKind.SQLITE
    # sqlite3 is built without SQLITE_ENABLE_DBSTAT_VTAB, so there is no dbstat table to size from
    supports_sizing = False
    qualify_tables = False
    templates = SQLITE_TEMPLATES

    def _db_path(self, profile: ConnectionProfile) -> str:
        raw = profile.file_path or profile.database
        if not raw:
            raise ValueError("file_path is required for sqlite")
        return str(Path(raw).expanduser())

    def build_dsn(self, profile: ConnectionProfile) -> str:
        return self._db_path(profile)

    def open_connection(self, profile: ConnectionProfile, timeout: float) -> sqlite3.Connection:
        db_path = Path(self._db_path(profile))
        if not db_path.exists():
            raise ValueError(f"SQLite database file does not exist: {db_path}")
        return sqlite3.connect(str(db_path), timeout=timeout, isolation_level=None, check_same_thread=False)

    def schema_for(self, profile: ConnectionProfile) -> str:
        return DEFAULT_SCHEMA

    def list_schemas(self, handle: "DatabaseHandle") -> List[str]:
        return [str(row[1]) for row in self._fetch_all(handle, self.template("show_databases"))]

    def list_tables(self, handle: "DatabaseHandle", schema: str) -> List[str]:
        return [str(row[0]) for row in self._fetch_all(handle, self.template("show_tables"))]

    def get_columns(self, handle: "DatabaseHandle", schema: str, table: str) -> List[Column]:
        info = self._fetch_all(handle, self.template("table_info"), (table,))
        if not info:
            raise IntrospectionFailedError(f"table '{table}' not found")
        foreign_keys: Dict[str, Any] = {}
        for fk in self._fetch_all(handle, self.template("foreign_key_list"), (table,)):
            # id, seq, table, from, to
            foreign_keys.setdefault(str(fk[3]), fk)

        rows = []
        for _cid, name, sql_type, _notnull, _default, pk in info:
            fk = foreign_keys.get(str(name))
            if pk:
                key = KEY_PRIMARY
            elif fk is not None:
                key = KEY_FOREIGN
            else:
                key = KEY_NONE
            rows.append(
                (
                    name,
                    sql_type or "",
                    key,
                    "",
                    fk[2] if fk is not None else "",
                    (fk[4] or "") if fk is not None else "",
                )
            )
        return merge_column_rows(rows)

    def get_column_data_type(self, handle: "DatabaseHandle", schema: str, table: str, column: str) -> str:
        value = self._fetch_scalar(handle, self.template("column_data_type"), (table, column))
        if value is None:
            raise IntrospectionFailedError(f"Column '{column}' not found in table '{table}'")
        return str(value)

    def count_columns(self, handle: "DatabaseHandle", schema: str, table: str) -> int:
        return int(self._fetch_scalar(handle, self.template("count_columns"), (table,)) or 0)

    def show_create_table(self, handle: "DatabaseHandle", schema: str, table: str) -> str:
        row = self._fetch_one(handle, self.template("show_create_table"), (table,))
        if row is None:
            raise IntrospectionFailedError(f"table '{table}' not found")
        return str(row[1])
