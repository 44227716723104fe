from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from adapters.models import ConnectionProfile


class ConnectRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    database_type: str = Field(..., alias="databaseType", min_length=1, max_length=30)
    host: str = Field(default="", max_length=255)
    port: int = Field(default=0, ge=0, le=65535)
    user: str = Field(default="", max_length=120)
    password: str = Field(default="", max_length=500)
    database: str = Field(default="", max_length=255)
    file_path: Optional[str] = Field(default=None, max_length=1000, description="SQLite database file")

    def to_profile(self) -> ConnectionProfile:
        return ConnectionProfile(
            dialect=self.database_type,
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            file_path=self.file_path or "",
        )


class SaveConnectionRequest(ConnectRequest):
    key: Optional[str] = Field(default=None, max_length=255, description="Defaults to the database name")


class UpdateRequest(BaseModel):
    table: str = Field(..., min_length=1, max_length=255)
    column: str = Field(..., min_length=1, max_length=255)
    value: str
    key_column: str = Field(..., min_length=1, max_length=255)
    key_value: str


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1)


class ApiResponse(BaseModel):
    message: str = ""
    data: Optional[Any] = None
