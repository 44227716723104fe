from __future__ import annotations

from typing import Dict, Type, Union

from adapters.base import DatabaseAdapter, DialectKind, UnsupportedDialectError
from adapters.mysql import MySQLAdapter
from adapters.postgres import PostgresAdapter
from adapters.sqlite import SQLiteAdapter


_DIALECT_NAMES: Dict[str, DialectKind] = {
    "mysql": DialectKind.MYSQL,
    "postgresql": DialectKind.POSTGRESQL,
    "postgres": DialectKind.POSTGRESQL,
    "sqlite": DialectKind.SQLITE,
}

_ADAPTERS: Dict[DialectKind, Type[DatabaseAdapter]] = {
    DialectKind.MYSQL: MySQLAdapter,
    DialectKind.POSTGRESQL: PostgresAdapter,
    DialectKind.SQLITE: SQLiteAdapter,
}


def resolve_dialect(name: str) -> DialectKind:
    return _DIALECT_NAMES.get((name or "").strip().lower(), DialectKind.UNSUPPORTED)


def get_adapter(dialect: Union[str, DialectKind]) -> DatabaseAdapter:
    kind = dialect if isinstance(dialect, DialectKind) else resolve_dialect(dialect)
    adapter_cls = _ADAPTERS.get(kind)
    if adapter_cls is None:
        raise UnsupportedDialectError(f"unsupported database type: {dialect}")
    return adapter_cls()
