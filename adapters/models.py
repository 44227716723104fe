from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


KEY_PRIMARY = "PRI"
KEY_FOREIGN = "MUL"
KEY_NONE = ""


@dataclass
class ConnectionProfile:
    """Connection details for one session; never persisted by the core."""

    dialect: str
    host: str = ""
    port: int = 0
    user: str = ""
    password: str = ""
    database: str = ""
    file_path: str = ""

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ConnectionProfile":
        port_raw = payload.get("port") or 0
        return cls(
            dialect=str(payload.get("databaseType") or payload.get("dialect") or ""),
            host=str(payload.get("host") or ""),
            port=int(port_raw),
            user=str(payload.get("user") or ""),
            password=str(payload.get("password") or ""),
            database=str(payload.get("database") or ""),
            file_path=str(payload.get("file_path") or payload.get("filePath") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "databaseType": self.dialect,
            "file_path": self.file_path,
        }


@dataclass(frozen=True)
class Column:
    field: str
    type: str
    key: str = KEY_NONE
    constraint_name: str = ""
    referenced_table: str = ""
    referenced_column: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TableColumns:
    table_name: str
    columns: List[Column]

    def to_dict(self) -> Dict[str, Any]:
        return {"table_name": self.table_name, "columns": [c.to_dict() for c in self.columns]}


@dataclass
class Table:
    name: str
    columns: List[Column]
    rows: List[Dict[str, Any]]
    size_mb: Optional[float] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_name": self.name,
            "data": self.rows,
            "columns": [c.to_dict() for c in self.columns],
            "n_columns": self.column_count,
            "n_rows": self.row_count,
            "size_mb": self.size_mb,
        }


@dataclass(frozen=True)
class QueryResult:
    affected_rows: int
    elapsed: str
    rows: List[Dict[str, Any]] = field(default_factory=list)
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "affected_rows": self.affected_rows,
            "time_taken": self.elapsed,
            "data": self.rows,
            "message": self.message,
        }


@dataclass(frozen=True)
class TableSize:
    table: str
    size_mb: float

    def to_dict(self) -> Dict[str, Any]:
        return {"table_name": self.table, "size_mb": self.size_mb}


@dataclass(frozen=True)
class SchemaSize:
    name: str
    size_mb: float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "size_mb": self.size_mb}


@dataclass
class SchemaSnapshot:
    name: str
    table_count: int = 0
    size_mb: Optional[float] = None
    tables: List[TableColumns] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "number_of_tables": self.table_count,
            "size_mb": self.size_mb,
            "tables": [t.to_dict() for t in self.tables],
        }
