"""Multi-dialect database access layer: dialect registry, connections, introspection and SQL building."""

from adapters.base import (
    AdapterError,
    ConnectionFailedError,
    DialectKind,
    ExportFailedError,
    IntrospectionFailedError,
    NoActiveConnectionError,
    QueryExecutionFailedError,
    UnsupportedDialectError,
)
from adapters.factory import get_adapter, resolve_dialect

__all__ = [
    "AdapterError",
    "ConnectionFailedError",
    "DialectKind",
    "ExportFailedError",
    "IntrospectionFailedError",
    "NoActiveConnectionError",
    "QueryExecutionFailedError",
    "UnsupportedDialectError",
    "get_adapter",
    "resolve_dialect",
]
