from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence

from adapters.models import KEY_FOREIGN, KEY_NONE, KEY_PRIMARY, Column, ConnectionProfile, SchemaSize, TableSize

if TYPE_CHECKING:
    from adapters.connection import DatabaseHandle


class DialectKind(str, Enum):
    MYSQL = "MySQL"
    POSTGRESQL = "PostgreSQL"
    SQLITE = "SQLite"
    UNSUPPORTED = "Unsupported"


class AdapterError(RuntimeError):
    kind = "AdapterError"


class ConnectionFailedError(AdapterError):
    kind = "ConnectionFailed"


class UnsupportedDialectError(AdapterError):
    kind = "UnsupportedDialect"


class NoActiveConnectionError(AdapterError):
    kind = "NoActiveConnection"


class IntrospectionFailedError(AdapterError):
    kind = "IntrospectionFailed"


class QueryExecutionFailedError(AdapterError):
    kind = "QueryExecutionFailed"


class ExportFailedError(AdapterError):
    kind = "ExportFailed"


COMMON_TEMPLATES: Dict[str, str] = {
    "select_all": "SELECT * FROM {schema}.{table}",
    "update_row": "UPDATE {table} SET {column} = {value} WHERE {key_column} = {key_value}",
    "ping": "SELECT 1",
}


def execute(cur: Any, sql: str, params: Optional[Sequence[Any]] = None) -> None:
    if params is None:
        cur.execute(sql)
    else:
        cur.execute(sql, tuple(params))


def merge_column_rows(rows: Sequence[Sequence[Any]]) -> List[Column]:
    """Collapse catalog rows (field, type, key, constraint, ref table, ref column) into one Column per field.

    A column taking part in several constraints comes back once per constraint;
    PRI wins over MUL and reference details are taken from whichever row has them.
    """
    merged: Dict[str, Dict[str, str]] = {}
    for row in rows:
        field, sql_type, key, constraint, ref_table, ref_column = (str(v) if v is not None else "" for v in row)
        key = key.upper()
        if key not in (KEY_PRIMARY, KEY_FOREIGN):
            key = KEY_NONE
        entry = merged.get(field)
        if entry is None:
            merged[field] = {
                "field": field,
                "type": sql_type,
                "key": key,
                "constraint_name": constraint,
                "referenced_table": ref_table,
                "referenced_column": ref_column,
            }
            continue
        if key == KEY_PRIMARY and entry["key"] != KEY_PRIMARY:
            entry["key"] = KEY_PRIMARY
            entry["constraint_name"] = constraint or entry["constraint_name"]
        elif key == KEY_FOREIGN and entry["key"] == KEY_NONE:
            entry["key"] = KEY_FOREIGN
            entry["constraint_name"] = constraint or entry["constraint_name"]
        if ref_table and not entry["referenced_table"]:
            entry["referenced_table"] = ref_table
            entry["referenced_column"] = ref_column
        if constraint and not entry["constraint_name"]:
            entry["constraint_name"] = constraint
    return [Column(**entry) for entry in merged.values()]


class DatabaseAdapter(ABC):
    """Per-dialect capability set: SQL templates, connection and catalog queries."""

    kind: DialectKind = DialectKind.UNSUPPORTED
    identifier_quote: str = ""
    supports_sizing: bool = True
    qualify_tables: bool = True
    templates: Dict[str, str] = {}

    def template(self, key: str) -> str:
        sql = self.templates.get(key) or COMMON_TEMPLATES.get(key)
        if sql is None:
            raise UnsupportedDialectError(f"'{key}' is not supported for {self.kind.value}")
        return sql

    def quote_identifier(self, name: str) -> str:
        q = self.identifier_quote
        if not q:
            return name
        return f"{q}{name.replace(q, q + q)}{q}"

    def qualified_name(self, schema: str, table: str) -> str:
        if self.qualify_tables and schema:
            return f"{schema}.{table}"
        return table

    # ----------------------------
    # Connection
    # ----------------------------
    @abstractmethod
    def build_dsn(self, profile: ConnectionProfile) -> str:
        raise NotImplementedError

    @abstractmethod
    def open_connection(self, profile: ConnectionProfile, timeout: float) -> Any:
        raise NotImplementedError

    def redacted_dsn(self, profile: ConnectionProfile) -> str:
        if profile.password:
            profile = replace(profile, password="****")
        return self.build_dsn(profile)

    def schema_for(self, profile: ConnectionProfile) -> str:
        return profile.database

    def display_schema_name(self, profile: ConnectionProfile) -> str:
        return self.schema_for(profile)

    # ----------------------------
    # Catalog helpers
    # ----------------------------
    def _fetch_all(self, handle: "DatabaseHandle", sql: str, params: Optional[Sequence[Any]] = None) -> List[Any]:
        try:
            with handle.cursor() as cur:
                execute(cur, sql, params)
                return list(cur.fetchall())
        except AdapterError:
            raise
        except Exception as exc:
            raise IntrospectionFailedError(f"Catalog query failed on {self.kind.value}: {exc}") from exc

    def _fetch_one(self, handle: "DatabaseHandle", sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        rows = self._fetch_all(handle, sql, params)
        return rows[0] if rows else None

    def _fetch_scalar(self, handle: "DatabaseHandle", sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        row = self._fetch_one(handle, sql, params)
        if row is None:
            return None
        return row[0]

    # ----------------------------
    # Introspection
    # ----------------------------
    @abstractmethod
    def list_schemas(self, handle: "DatabaseHandle") -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def list_tables(self, handle: "DatabaseHandle", schema: str) -> List[str]:
        raise NotImplementedError

    def get_columns(self, handle: "DatabaseHandle", schema: str, table: str) -> List[Column]:
        rows = self._fetch_all(handle, self.template("columns_info"), (schema, table))
        return merge_column_rows(rows)

    def get_column_data_type(self, handle: "DatabaseHandle", schema: str, table: str, column: str) -> str:
        value = self._fetch_scalar(handle, self.template("column_data_type"), (schema, table, column))
        if value is None:
            raise IntrospectionFailedError(f"Column '{column}' not found in table '{table}'")
        return str(value)

    def count_rows(self, handle: "DatabaseHandle", schema: str, table: str) -> int:
        sql = self.template("count_rows").format(table=self.qualified_name(schema, table))
        return int(self._fetch_scalar(handle, sql) or 0)

    def count_columns(self, handle: "DatabaseHandle", schema: str, table: str) -> int:
        return int(self._fetch_scalar(handle, self.template("count_columns"), (schema, table)) or 0)

    def get_schema_size_mb(self, handle: "DatabaseHandle", schema: str) -> SchemaSize:
        self._require_sizing()
        row = self._fetch_one(handle, self.template("schema_size"), (schema,))
        if row is None:
            return SchemaSize(name=schema, size_mb=0.0)
        return SchemaSize(name=str(row[0]), size_mb=float(row[1] or 0))

    def get_table_size_mb(self, handle: "DatabaseHandle", schema: str, table: str) -> TableSize:
        self._require_sizing()
        row = self._fetch_one(handle, self.template("table_size"), (schema, table))
        if row is None:
            raise IntrospectionFailedError(f"table '{table}' not found")
        return TableSize(table=str(row[0]), size_mb=float(row[1] or 0))

    def get_all_table_sizes_mb(self, handle: "DatabaseHandle", schema: str) -> List[TableSize]:
        self._require_sizing()
        rows = self._fetch_all(handle, self.template("tables_size"), (schema,))
        return [TableSize(table=str(name), size_mb=float(size or 0)) for name, size in rows]

    def _require_sizing(self) -> None:
        if not self.supports_sizing:
            raise UnsupportedDialectError(f"Size statistics are not supported for {self.kind.value}")

    # ----------------------------
    # DDL
    # ----------------------------
    @contextmanager
    def ddl_session(self, handle: "DatabaseHandle") -> Iterator[None]:
        yield

    @abstractmethod
    def show_create_table(self, handle: "DatabaseHandle", schema: str, table: str) -> str:
        raise NotImplementedError
