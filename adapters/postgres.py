from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, List

import psycopg
from psycopg.conninfo import make_conninfo

from adapters.base import (
    DatabaseAdapter,
    DialectKind,
    ExportFailedError,
    IntrospectionFailedError,
    execute,
)
from adapters.models import ConnectionProfile, SchemaSize

if TYPE_CHECKING:
    from adapters.connection import DatabaseHandle


logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"
SHOW_CREATE_FUNCTION = "public.sqlweb_show_create_table"

# Rebuilds CREATE TABLE text from the catalog: columns, then constraints
# ranked primary key, unique, foreign key, check, then index definitions.
_SHOW_CREATE_FUNCTION_SQL = r"""
CREATE OR REPLACE FUNCTION public.sqlweb_show_create_table(
    in_schema_name varchar,
    in_table_name varchar
)
RETURNS text
LANGUAGE plpgsql VOLATILE
AS
$$
DECLARE
    v_table_ddl text;
    v_column_record record;
    v_constraint_record record;
    v_index_record record;
BEGIN
    v_table_ddl := 'CREATE TABLE ' || in_schema_name || '.' || in_table_name || ' (' || E'\n';

    FOR v_column_record IN
        SELECT
            c.column_name,
            c.data_type,
            c.character_maximum_length,
            c.is_nullable,
            c.column_default
        FROM information_schema.columns c
        WHERE (c.table_schema, c.table_name) = (in_schema_name, in_table_name)
        ORDER BY c.ordinal_position
    LOOP
        v_table_ddl := v_table_ddl || '  '
            || v_column_record.column_name || ' '
            || v_column_record.data_type
            || CASE WHEN v_column_record.character_maximum_length IS NOT NULL
                    THEN ('(' || v_column_record.character_maximum_length || ')') ELSE '' END || ' '
            || CASE WHEN v_column_record.is_nullable = 'NO' THEN 'NOT NULL' ELSE 'NULL' END
            || CASE WHEN v_column_record.column_default IS NOT NULL
                    THEN (' DEFAULT ' || v_column_record.column_default) ELSE '' END
            || ',' || E'\n';
    END LOOP;

    FOR v_constraint_record IN
        SELECT
            con.conname AS constraint_name,
            CASE
                WHEN con.contype = 'p' THEN 1
                WHEN con.contype = 'u' THEN 2
                WHEN con.contype = 'f' THEN 3
                WHEN con.contype = 'c' THEN 4
                ELSE 5
            END AS type_rank,
            pg_get_constraintdef(con.oid) AS constraint_definition
        FROM pg_catalog.pg_constraint con
        JOIN pg_catalog.pg_class rel ON rel.oid = con.conrelid
        JOIN pg_catalog.pg_namespace nsp ON nsp.oid = con.connamespace
        WHERE nsp.nspname = in_schema_name
          AND rel.relname = in_table_name
        ORDER BY type_rank
    LOOP
        v_table_ddl := v_table_ddl || '  '
            || 'CONSTRAINT ' || v_constraint_record.constraint_name || ' '
            || v_constraint_record.constraint_definition
            || ',' || E'\n';
    END LOOP;

    v_table_ddl := substr(v_table_ddl, 0, length(v_table_ddl) - 1) || E'\n';
    v_table_ddl := v_table_ddl || ');' || E'\n';

    FOR v_index_record IN
        SELECT indexdef
        FROM pg_indexes
        WHERE (schemaname, tablename) = (in_schema_name, in_table_name)
    LOOP
        v_table_ddl := v_table_ddl || v_index_record.indexdef || ';' || E'\n';
    END LOOP;

    RETURN v_table_ddl;
END;
$$;
"""

POSTGRES_TEMPLATES: Dict[str, str] = {
    "show_databases": """
        SELECT datname
        FROM pg_database
        WHERE NOT datistemplate
        ORDER BY datname
    """,
    "show_tables": """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = %s
        ORDER BY table_name
    """,
    "columns_info": """
        SELECT
            c.column_name AS field,
            c.data_type AS type,
            CASE
                WHEN tc.constraint_type = 'PRIMARY KEY' THEN 'PRI'
                WHEN tc.constraint_type = 'FOREIGN KEY' THEN 'MUL'
                ELSE ''
            END AS key,
            COALESCE(tc.constraint_name, '') AS constraint_name,
            CASE WHEN tc.constraint_type = 'FOREIGN KEY' THEN COALESCE(ccu.table_name, '') ELSE '' END AS referenced_table,
            CASE WHEN tc.constraint_type = 'FOREIGN KEY' THEN COALESCE(ccu.column_name, '') ELSE '' END AS referenced_column
        FROM information_schema.columns c
        LEFT JOIN information_schema.key_column_usage kcu
          ON c.table_schema = kcu.table_schema
         AND c.table_name = kcu.table_name
         AND c.column_name = kcu.column_name
        LEFT JOIN information_schema.table_constraints tc
          ON kcu.constraint_name = tc.constraint_name
         AND kcu.constraint_schema = tc.constraint_schema
        LEFT JOIN information_schema.constraint_column_usage ccu
          ON tc.constraint_name = ccu.constraint_name
         AND tc.constraint_schema = ccu.constraint_schema
        WHERE c.table_schema = %s
          AND c.table_name = %s
        ORDER BY c.ordinal_position
    """,
    "column_data_type": """
        SELECT data_type
        FROM information_schema.columns
        WHERE table_schema = %s
          AND table_name = %s
          AND column_name = %s
    """,
    "count_rows": "SELECT count(*) AS total_rows FROM {table}",
    "count_columns": """
        SELECT count(column_name) AS total_columns
        FROM information_schema.columns
        WHERE table_schema = %s
          AND table_name = %s
    """,
    "schema_size": """
        SELECT current_database(),
               ROUND(pg_database_size(current_database()) / 1024.0 / 1024.0, 2)
    """,
    "tables_size": """
        SELECT table_name,
               ROUND(pg_total_relation_size((quote_ident(table_schema) || '.' || quote_ident(table_name))::regclass) / 1024.0 / 1024.0, 2) AS size_mb
        FROM information_schema.tables
        WHERE table_type = 'BASE TABLE'
          AND table_schema = %s
        ORDER BY size_mb DESC
    """,
    "table_size": """
        SELECT table_name,
               ROUND(pg_total_relation_size((quote_ident(table_schema) || '.' || quote_ident(table_name))::regclass) / 1024.0 / 1024.0, 2) AS size_mb
        FROM information_schema.tables
        WHERE table_schema = %s
          AND table_name = %s
    """,
    "show_create_function": _SHOW_CREATE_FUNCTION_SQL,
    "show_create_table": f"SELECT {SHOW_CREATE_FUNCTION}(%s, %s)",
    "drop_show_create_function": f"DROP FUNCTION IF EXISTS {SHOW_CREATE_FUNCTION}(varchar, varchar)",
    "select_all_with_limit": "SELECT {columns} FROM {table} LIMIT {limit} OFFSET {offset}",
    "drop_table": "DROP TABLE IF EXISTS {table}",
    "truncate_table": "TRUNCATE TABLE {table}",
    "create_database": "CREATE DATABASE {schema}",
    "drop_database": "DROP DATABASE IF EXISTS {schema}",
}


class PostgresAdapter(DatabaseAdapter):
    kind = DialectKind.POSTGRESQL
    identifier_quote = '"'
    templates = POSTGRES_TEMPLATES

    def _db_params(self, profile: ConnectionProfile) -> Dict[str, Any]:
        if not profile.host:
            raise ValueError("host is required")
        if not profile.user:
            raise ValueError("user is required")
        if not profile.database:
            raise ValueError("database is required")
        return {
            "host": profile.host,
            "port": int(profile.port or 5432),
            "user": profile.user,
            "password": profile.password,
            "dbname": profile.database,
        }

    def build_dsn(self, profile: ConnectionProfile) -> str:
        return make_conninfo(**self._db_params(profile), sslmode="disable")

    def open_connection(self, profile: ConnectionProfile, timeout: float) -> Any:
        return psycopg.connect(
            **self._db_params(profile),
            sslmode="disable",
            autocommit=True,
            connect_timeout=int(timeout),
        )

    def schema_for(self, profile: ConnectionProfile) -> str:
        return DEFAULT_SCHEMA

    def display_schema_name(self, profile: ConnectionProfile) -> str:
        # the UI shows the database, not "public"
        return profile.database

    def list_schemas(self, handle: "DatabaseHandle") -> List[str]:
        return [str(row[0]) for row in self._fetch_all(handle, self.template("show_databases"))]

    def list_tables(self, handle: "DatabaseHandle", schema: str) -> List[str]:
        return [str(row[0]) for row in self._fetch_all(handle, self.template("show_tables"), (schema,))]

    def get_schema_size_mb(self, handle: "DatabaseHandle", schema: str) -> SchemaSize:
        row = self._fetch_one(handle, self.template("schema_size"))
        if row is None:
            return SchemaSize(name=schema, size_mb=0.0)
        return SchemaSize(name=str(row[0]), size_mb=float(row[1] or 0))

    @contextmanager
    def ddl_session(self, handle: "DatabaseHandle") -> Iterator[None]:
        """Install the reconstruction function for the duration of the block; it is always dropped."""
        try:
            with handle.cursor() as cur:
                execute(cur, self.template("show_create_function"))
        except Exception as exc:
            self._drop_show_create_function(handle, strict=False)
            raise ExportFailedError(f"Failed to install {SHOW_CREATE_FUNCTION}: {exc}") from exc
        try:
            yield
        except BaseException:
            self._drop_show_create_function(handle, strict=False)
            raise
        self._drop_show_create_function(handle, strict=True)

    def _drop_show_create_function(self, handle: "DatabaseHandle", strict: bool) -> None:
        try:
            with handle.cursor() as cur:
                execute(cur, self.template("drop_show_create_function"))
        except Exception as exc:
            if strict:
                raise ExportFailedError(f"Failed to drop {SHOW_CREATE_FUNCTION}: {exc}") from exc
            logger.warning("Could not drop %s: %s", SHOW_CREATE_FUNCTION, exc)

    def show_create_table(self, handle: "DatabaseHandle", schema: str, table: str) -> str:
        value = self._fetch_scalar(handle, self.template("show_create_table"), (schema, table))
        if value is None:
            raise IntrospectionFailedError(f"table '{table}' not found")
        return str(value)
