from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response

from adapters.base import AdapterError, NoActiveConnectionError
from api.schemas import ApiResponse, ConnectRequest, QueryRequest, SaveConnectionRequest, UpdateRequest
from client.registry import DEFAULT_SESSION_ID, SessionRegistry
from client.session import SqlClient
from metadata.connection_history import append_connection, list_connections


router = APIRouter()
registry = SessionRegistry()


def _session_id(x_session_id: Optional[str] = Header(default=None)) -> str:
    return x_session_id or DEFAULT_SESSION_ID


def _http_error(exc: Exception, message: str) -> HTTPException:
    status_code = 409 if isinstance(exc, NoActiveConnectionError) else 400
    kind = getattr(exc, "kind", type(exc).__name__)
    return HTTPException(status_code=status_code, detail={"message": message, "error": str(exc), "kind": kind})


def _client(session_id: str) -> SqlClient:
    try:
        return registry.get(session_id)
    except NoActiveConnectionError as exc:
        raise _http_error(exc, "No active database connection") from exc


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.post("/connect", response_model=ApiResponse)
def connect_database(request: ConnectRequest, session_id: str = Depends(_session_id)) -> ApiResponse:
    try:
        _, schema, tables = registry.connect(session_id, request.to_profile())
    except AdapterError as exc:
        raise _http_error(exc, "Failed to connect to the database") from exc
    return ApiResponse(
        message=f"Successfully connected to {schema}",
        data={"schema": schema, "tables": [t.to_dict() for t in tables]},
    )


@router.post("/disconnect", response_model=ApiResponse)
def disconnect_database(session_id: str = Depends(_session_id)) -> ApiResponse:
    try:
        registry.disconnect(session_id)
    except AdapterError as exc:
        raise _http_error(exc, "Failed to disconnect from database") from exc
    return ApiResponse(message="Disconnected")


@router.post("/save", response_model=ApiResponse)
def save_connection(request: SaveConnectionRequest) -> ApiResponse:
    profile = request.to_profile()
    try:
        append_connection(request.key or profile.database or profile.file_path, profile)
    except OSError as exc:
        raise HTTPException(
            status_code=400,
            detail={"message": "Error writing connection info to file", "error": str(exc)},
        ) from exc
    return ApiResponse(message="Success: connection saved")


@router.get("/saved/connections", response_model=ApiResponse)
def saved_connections() -> ApiResponse:
    try:
        profiles = list_connections()
    except (OSError, ValueError) as exc:
        raise HTTPException(
            status_code=400,
            detail={"message": "Error retrieving saved connections", "error": str(exc)},
        ) from exc
    return ApiResponse(message="OK", data=[p.to_dict() for p in profiles])


@router.get("/schemas", response_model=ApiResponse)
def show_schemas(session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        schemas = client.list_schemas()
    except AdapterError as exc:
        raise _http_error(exc, "Failed to list schemas") from exc
    return ApiResponse(data=schemas)


@router.get("/table", response_model=ApiResponse)
def table_data(
    name: str = Query(..., min_length=1),
    page: int = Query(default=1),
    per_page: int = Query(default=50, alias="perPage", ge=1, le=10000),
    session_id: str = Depends(_session_id),
) -> ApiResponse:
    client = _client(session_id)
    try:
        table, total_rows, pages = client.get_table(name, page, per_page)
    except (AdapterError, ValueError) as exc:
        raise _http_error(exc, f"Failed to get table data: {name}") from exc
    return ApiResponse(data={"table": table.to_dict(), "total_rows": total_rows, "total_pages": pages})


@router.get("/columns/table", response_model=ApiResponse)
def column_data(name: str = Query(..., min_length=1), session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        columns = client.get_columns(name)
    except AdapterError as exc:
        raise _http_error(exc, f"Failed to get columns for table: {name}") from exc
    return ApiResponse(data={"table_name": name, "columns": [c.to_dict() for c in columns]})


@router.get("/table/size", response_model=ApiResponse)
def table_sizes(session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        sizes = client.get_table_sizes()
    except AdapterError as exc:
        raise _http_error(exc, "Failed to get table sizes") from exc
    return ApiResponse(data=[s.to_dict() for s in sizes])


@router.get("/schema/size", response_model=ApiResponse)
def schema_size(session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        size = client.get_schema_size()
    except AdapterError as exc:
        raise _http_error(exc, "Failed to get schema size") from exc
    return ApiResponse(data=size.to_dict())


@router.get("/table/size/{name}", response_model=ApiResponse)
def table_size(name: str, session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        size = client.get_table_size(name)
    except AdapterError as exc:
        raise _http_error(exc, f"Failed to get table size: {name}") from exc
    return ApiResponse(data=size.to_dict())


@router.post("/update", response_model=ApiResponse)
def update_row(request: UpdateRequest, session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        result = client.update_cell(request.table, request.column, request.value, request.key_column, request.key_value)
    except AdapterError as exc:
        raise _http_error(exc, "Failed to update row") from exc
    return ApiResponse(message=result.message, data=result.to_dict())


@router.post("/execute", response_model=ApiResponse)
def execute_query(request: QueryRequest, session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        result = client.execute_raw_query(request.query)
    except AdapterError as exc:
        raise _http_error(exc, "Failed to execute query") from exc
    return ApiResponse(message=result.message, data=result.to_dict())


@router.post("/table/{name}/drop", response_model=ApiResponse)
def drop_table(name: str, session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        result = client.drop_table(name)
    except AdapterError as exc:
        raise _http_error(exc, f"Failed to drop table: {name}") from exc
    return ApiResponse(message=result.message, data=result.to_dict())


@router.post("/table/{name}/truncate", response_model=ApiResponse)
def truncate_table(name: str, session_id: str = Depends(_session_id)) -> ApiResponse:
    client = _client(session_id)
    try:
        result = client.truncate_table(name)
    except AdapterError as exc:
        raise _http_error(exc, f"Failed to truncate table: {name}") from exc
    return ApiResponse(message=result.message, data=result.to_dict())


@router.get("/export/json")
def export_json(name: str = Query(..., min_length=1), session_id: str = Depends(_session_id)) -> Response:
    client = _client(session_id)
    try:
        payload = client.export_json(name)
    except AdapterError as exc:
        raise _http_error(exc, f"Failed to export table: {name}") from exc
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{name}.json"'},
    )


@router.get("/export/csv")
def export_csv(name: str = Query(..., min_length=1), session_id: str = Depends(_session_id)) -> Response:
    client = _client(session_id)
    try:
        payload = client.export_csv(name)
    except AdapterError as exc:
        raise _http_error(exc, f"Failed to export table: {name}") from exc
    return Response(
        content=payload,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{name}.csv"'},
    )


@router.get("/export/sql")
def export_sql(session_id: str = Depends(_session_id)) -> Response:
    client = _client(session_id)
    try:
        payload = client.export_schema_ddl()
    except AdapterError as exc:
        raise _http_error(exc, "Failed to export schema") from exc
    return Response(content=payload, media_type="text/plain")


@router.post("/export/file", response_model=ApiResponse)
def export_file(
    kind: str = Query(..., pattern="^(sql|json|csv)$"),
    name: Optional[str] = Query(default=None),
    session_id: str = Depends(_session_id),
) -> ApiResponse:
    client = _client(session_id)
    try:
        written = client.export_to_file(kind, name)
    except (AdapterError, ValueError) as exc:
        raise _http_error(exc, f"Failed to export {kind} file") from exc
    return ApiResponse(message=f"Exported {written} bytes", data={"bytes": written})
