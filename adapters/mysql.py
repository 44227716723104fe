from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

import pymysql

from adapters.base import (
    AdapterError,
    DatabaseAdapter,
    DialectKind,
    IntrospectionFailedError,
    execute,
)
from adapters.models import ConnectionProfile

if TYPE_CHECKING:
    from adapters.connection import DatabaseHandle


MYSQL_TEMPLATES: Dict[str, str] = {
    "show_databases": "SHOW DATABASES",
    "use": "USE {schema}",
    "show_tables": "SHOW TABLES",
    "columns_info": """
        SELECT
            c.COLUMN_NAME AS Field,
            c.COLUMN_TYPE AS Type,
            c.COLUMN_KEY AS `Key`,
            COALESCE(k.CONSTRAINT_NAME, '') AS ConstraintName,
            COALESCE(k.REFERENCED_TABLE_NAME, '') AS ReferencedTable,
            COALESCE(k.REFERENCED_COLUMN_NAME, '') AS ReferencedColumn
        FROM information_schema.COLUMNS c
        LEFT JOIN information_schema.KEY_COLUMN_USAGE k
          ON c.TABLE_SCHEMA = k.TABLE_SCHEMA
         AND c.TABLE_NAME = k.TABLE_NAME
         AND c.COLUMN_NAME = k.COLUMN_NAME
        WHERE c.TABLE_SCHEMA = %s
          AND c.TABLE_NAME = %s
        ORDER BY c.ORDINAL_POSITION
    """,
    "column_data_type": """
        SELECT DATA_TYPE
        FROM information_schema.COLUMNS
        WHERE TABLE_SCHEMA = %s
          AND TABLE_NAME = %s
          AND COLUMN_NAME = %s
    """,
    "count_rows": "SELECT COUNT(*) FROM {table}",
    "count_columns": """
        SELECT COUNT(*) AS Total_Columns
        FROM information_schema.columns
        WHERE table_schema = %s
          AND table_name = %s
    """,
    "schema_size": """
        SELECT table_schema AS `database`,
               SUM(data_length + index_length) / 1024 / 1024 AS size_mb
        FROM information_schema.TABLES
        WHERE table_schema = %s
        GROUP BY table_schema
    """,
    "tables_size": """
        SELECT TABLE_NAME AS `Table`,
               ROUND(((DATA_LENGTH + INDEX_LENGTH) / 1024 / 1024), 2) AS size_mb
        FROM information_schema.TABLES
        WHERE TABLE_SCHEMA = %s
        ORDER BY (DATA_LENGTH + INDEX_LENGTH) DESC
    """,
    "table_size": """
        SELECT TABLE_NAME AS `Table`,
               ROUND(((DATA_LENGTH + INDEX_LENGTH) / 1024 / 1024), 2) AS size_mb
        FROM information_schema.TABLES
        WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    """,
    "show_create_table": "SHOW CREATE TABLE {table}",
    "select_all_with_limit": "SELECT {columns} FROM {table} LIMIT {limit} OFFSET {offset}",
    "drop_table": "DROP TABLE {table}",
    "truncate_table": "TRUNCATE TABLE {table}",
    "create_database": "CREATE DATABASE {schema}",
    "drop_database": "DROP DATABASE {schema}",
}


class MySQLAdapter(DatabaseAdapter):
    kind = DialectKind.MYSQL
    identifier_quote = "`"
    templates = MYSQL_TEMPLATES

    def _db_params(self, profile: ConnectionProfile) -> Dict[str, Any]:
        if not profile.host:
            raise ValueError("host is required")
        if not profile.user:
            raise ValueError("user is required")
        if not profile.database:
            raise ValueError("database is required")
        return {
            "host": profile.host,
            "port": int(profile.port or 3306),
            "user": profile.user,
            "password": profile.password,
            "database": profile.database,
        }

    def build_dsn(self, profile: ConnectionProfile) -> str:
        params = self._db_params(profile)
        return f"{params['user']}:{params['password']}@tcp({params['host']}:{params['port']})/{params['database']}"

    def open_connection(self, profile: ConnectionProfile, timeout: float) -> Any:
        params = self._db_params(profile)
        return pymysql.connect(
            host=params["host"],
            port=params["port"],
            user=params["user"],
            password=params["password"],
            database=params["database"],
            autocommit=True,
            connect_timeout=int(timeout),
        )

    def list_schemas(self, handle: "DatabaseHandle") -> List[str]:
        return [str(row[0]) for row in self._fetch_all(handle, self.template("show_databases"))]

    def list_tables(self, handle: "DatabaseHandle", schema: str) -> List[str]:
        try:
            with handle.cursor() as cur:
                execute(cur, self.template("use").format(schema=self.quote_identifier(schema)))
                execute(cur, self.template("show_tables"))
                return [str(row[0]) for row in cur.fetchall()]
        except AdapterError:
            raise
        except Exception as exc:
            raise IntrospectionFailedError(f"Failed to list tables of '{schema}': {exc}") from exc

    def show_create_table(self, handle: "DatabaseHandle", schema: str, table: str) -> str:
        sql = self.template("show_create_table").format(table=self.qualified_name(schema, table))
        row = self._fetch_one(handle, sql)
        if row is None:
            raise IntrospectionFailedError(f"table '{table}' not found")
        return str(row[1])
