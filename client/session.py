from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from adapters.base import (
    AdapterError,
    DialectKind,
    ExportFailedError,
    NoActiveConnectionError,
    QueryExecutionFailedError,
    execute,
)
from adapters.connection import DatabaseHandle, connect, disconnect
from adapters.models import (
    Column,
    ConnectionProfile,
    QueryResult,
    SchemaSize,
    SchemaSnapshot,
    Table,
    TableColumns,
    TableSize,
)
from adapters.sql_renderer import build_select_all, build_update, page_offset, total_pages
from client import exporter
from client.decoder import fetch_decoded


logger = logging.getLogger(__name__)

Connector = Callable[[ConnectionProfile], DatabaseHandle]


class ClientState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SqlClient:
    """One live database session: the facade the HTTP layer talks to.

    Every data operation requires the CONNECTED state and fails with
    NoActiveConnectionError before touching the network otherwise.
    """

    def __init__(self, connector: Connector = connect):
        self._connector = connector
        self._lock = threading.RLock()
        self._state = ClientState.DISCONNECTED
        self._handle: Optional[DatabaseHandle] = None
        self.profile: Optional[ConnectionProfile] = None
        self.schema: Optional[SchemaSnapshot] = None

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def dialect(self) -> DialectKind:
        if self._handle is None:
            return DialectKind.UNSUPPORTED
        return self._handle.adapter.kind

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def connect(self, profile: ConnectionProfile) -> Tuple[str, List[TableColumns]]:
        with self._lock:
            if self._handle is not None:
                self._release_handle()
            self._state = ClientState.CONNECTING
            handle: Optional[DatabaseHandle] = None
            try:
                handle = self._connector(profile)
                adapter = handle.adapter
                schema_name = adapter.schema_for(profile)
                tables = adapter.list_tables(handle, schema_name)
                columns = [TableColumns(table, adapter.get_columns(handle, schema_name, table)) for table in tables]
                size_mb = None
                if adapter.supports_sizing:
                    size_mb = adapter.get_schema_size_mb(handle, schema_name).size_mb
            except Exception:
                self._state = ClientState.DISCONNECTED
                if handle is not None and not handle.closed:
                    try:
                        handle.close()
                    except Exception:
                        logger.warning("Failed to close connection after aborted connect", exc_info=True)
                raise

            self._handle = handle
            self.profile = profile
            self.schema = SchemaSnapshot(
                name=schema_name,
                table_count=len(tables),
                size_mb=size_mb,
                tables=columns,
            )
            self._state = ClientState.CONNECTED
            display_name = adapter.display_schema_name(profile)
            logger.info("Successfully connected to %s (%d tables)", display_name, len(tables))
            return display_name, columns

    def disconnect(self) -> None:
        with self._lock:
            handle = self._require_connection()
            try:
                disconnect(handle)
            finally:
                self._reset()

    def _release_handle(self) -> None:
        handle = self._handle
        self._reset()
        if handle is None or handle.closed:
            return
        try:
            disconnect(handle)
        except AdapterError:
            logger.warning("Failed to close the replaced session", exc_info=True)

    def _reset(self) -> None:
        self._handle = None
        self.profile = None
        self.schema = None
        self._state = ClientState.DISCONNECTED

    def _require_connection(self) -> DatabaseHandle:
        handle = self._handle
        if self._state is not ClientState.CONNECTED or handle is None or handle.closed:
            raise NoActiveConnectionError("no active database connection")
        return handle

    def _schema_name(self) -> str:
        return self.schema.name if self.schema else ""

    def _run(
        self,
        handle: DatabaseHandle,
        sql: str,
        error_cls: Type[AdapterError] = QueryExecutionFailedError,
    ) -> List[Dict[str, Any]]:
        try:
            with handle.cursor() as cur:
                execute(cur, sql)
                return fetch_decoded(cur)
        except AdapterError:
            raise
        except Exception as exc:
            raise error_cls(f"Query failed: {exc}") from exc

    # ----------------------------
    # Introspection
    # ----------------------------
    def list_schemas(self) -> List[str]:
        handle = self._require_connection()
        return handle.adapter.list_schemas(handle)

    def list_tables(self) -> List[str]:
        handle = self._require_connection()
        tables = handle.adapter.list_tables(handle, self._schema_name())
        if self.schema is not None:
            self.schema.table_count = len(tables)
        return tables

    def get_columns(self, table: str) -> List[Column]:
        handle = self._require_connection()
        return handle.adapter.get_columns(handle, self._schema_name(), table)

    def count_rows(self, table: str) -> int:
        handle = self._require_connection()
        return handle.adapter.count_rows(handle, self._schema_name(), table)

    def count_columns(self, table: str) -> int:
        handle = self._require_connection()
        return handle.adapter.count_columns(handle, self._schema_name(), table)

    def get_table(self, name: str, page: int, per_page: int) -> Tuple[Table, int, int]:
        handle = self._require_connection()
        if per_page <= 0:
            raise ValueError("per_page must be positive")
        adapter = handle.adapter
        schema = self._schema_name()
        total_rows = adapter.count_rows(handle, schema, name)
        columns = adapter.get_columns(handle, schema, name)
        sql = build_select_all(columns, adapter, schema, name, per_page, page_offset(page, per_page))
        rows = self._run(handle, sql)
        size_mb = None
        if adapter.supports_sizing:
            size_mb = adapter.get_table_size_mb(handle, schema, name).size_mb
        table = Table(name=name, columns=columns, rows=rows, size_mb=size_mb)
        return table, total_rows, total_pages(total_rows, per_page)

    def get_table_sizes(self) -> List[TableSize]:
        handle = self._require_connection()
        return handle.adapter.get_all_table_sizes_mb(handle, self._schema_name())

    def get_table_size(self, table: str) -> TableSize:
        handle = self._require_connection()
        return handle.adapter.get_table_size_mb(handle, self._schema_name(), table)

    def get_schema_size(self) -> SchemaSize:
        handle = self._require_connection()
        size = handle.adapter.get_schema_size_mb(handle, self._schema_name())
        if self.schema is not None:
            self.schema.size_mb = size.size_mb
        return size

    # ----------------------------
    # Statements
    # ----------------------------
    def update_cell(self, table: str, column: str, new_value: str, key_column: str, key_value: str) -> QueryResult:
        handle = self._require_connection()
        adapter = handle.adapter
        schema = self._schema_name()
        column_type = adapter.get_column_data_type(handle, schema, table, column)
        key_column_type = adapter.get_column_data_type(handle, schema, table, key_column)
        sql = build_update(table, column, new_value, key_column, key_value, column_type, key_column_type)
        logger.debug("Executing update: %s", sql)

        started = time.perf_counter()
        try:
            with handle.cursor() as cur:
                execute(cur, sql)
                affected = max(cur.rowcount, 0)
        except AdapterError:
            raise
        except Exception as exc:
            raise QueryExecutionFailedError(f"Update failed: {exc}") from exc
        elapsed = f"{time.perf_counter() - started:.3f}"
        return QueryResult(
            affected_rows=affected,
            elapsed=elapsed,
            message=f"Row updated successfully ({affected} rows affected, time taken {elapsed})",
        )

    def execute_raw_query(self, sql: str) -> QueryResult:
        handle = self._require_connection()
        adapter = handle.adapter
        started = time.perf_counter()
        try:
            with handle.cursor() as cur:
                if adapter.kind is DialectKind.MYSQL:
                    execute(cur, adapter.template("use").format(schema=adapter.quote_identifier(self._schema_name())))
                execute(cur, sql)
                if cur.description:
                    rows = fetch_decoded(cur)
                    affected = len(rows)
                else:
                    rows = []
                    affected = max(cur.rowcount, 0)
        except AdapterError:
            raise
        except Exception as exc:
            raise QueryExecutionFailedError(f"Query failed: {exc}") from exc
        elapsed = f"{time.perf_counter() - started:.5f}"
        return QueryResult(
            affected_rows=affected,
            elapsed=elapsed,
            rows=rows,
            message=f"Query executed successfully ({affected} rows affected, time taken {elapsed})",
        )

    def _execute_statement(self, template_key: str, message: str, **names: str) -> QueryResult:
        handle = self._require_connection()
        sql = handle.adapter.template(template_key).format(**names)
        started = time.perf_counter()
        try:
            with handle.cursor() as cur:
                execute(cur, sql)
                affected = max(cur.rowcount, 0)
        except AdapterError:
            raise
        except Exception as exc:
            raise QueryExecutionFailedError(f"Statement failed: {exc}") from exc
        elapsed = time.perf_counter() - started
        return QueryResult(
            affected_rows=affected,
            elapsed=f"{elapsed:.3f}",
            message=f"{message} ({elapsed:.3f}s)",
        )

    def drop_table(self, table: str) -> QueryResult:
        handle = self._require_connection()
        qualified = handle.adapter.qualified_name(self._schema_name(), table)
        return self._execute_statement("drop_table", f"Table '{table}' dropped successfully", table=qualified)

    def truncate_table(self, table: str) -> QueryResult:
        handle = self._require_connection()
        qualified = handle.adapter.qualified_name(self._schema_name(), table)
        return self._execute_statement("truncate_table", f"Table '{table}' truncated successfully", table=qualified)

    def create_database(self, name: str) -> QueryResult:
        return self._execute_statement("create_database", f"Database '{name}' created successfully", schema=name)

    def drop_database(self, name: str) -> QueryResult:
        return self._execute_statement("drop_database", f"Database '{name}' dropped successfully", schema=name)

    # ----------------------------
    # Export
    # ----------------------------
    def _select_all(self, table: str) -> List[Dict[str, Any]]:
        handle = self._require_connection()
        sql = handle.adapter.template("select_all").format(schema=self._schema_name(), table=table)
        return self._run(handle, sql, error_cls=ExportFailedError)

    def export_json(self, table: str) -> bytes:
        return exporter.export_json(self._select_all(table))

    def export_csv(self, table: str) -> str:
        return exporter.export_csv(self._select_all(table))

    def export_schema_ddl(self) -> str:
        handle = self._require_connection()
        schema = self._schema_name()
        tables = handle.adapter.list_tables(handle, schema)
        return exporter.reconstruct_ddl(handle, schema, tables)

    def export_to_file(self, kind: str, table: Optional[str] = None) -> int:
        kind = kind.lower()
        if kind == "sql":
            return exporter.write_export_file(f"{self._schema_name() or 'schema'}.sql", self.export_schema_ddl())
        if not table:
            raise ValueError("table is required for json and csv exports")
        if kind == "json":
            return exporter.write_export_file(f"{table}.json", self.export_json(table))
        if kind == "csv":
            return exporter.write_export_file(f"{table}.csv", self.export_csv(table))
        raise ValueError(f"Unsupported export format: {kind}")
