from __future__ import annotations

import csv
import io
import json
import logging
import os
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from adapters.base import AdapterError, ExportFailedError
from adapters.connection import DatabaseHandle
from utils.env_loader import load_environments


logger = logging.getLogger(__name__)

SEPARATOR = "\n" + "=" * 72 + "\n" + "=" * 72 + "\n"
CSV_TIME_FORMAT = "%d %b %y %H:%M"
CSV_DATE_FORMAT = "%d %b %y"
CSV_CLOCK_FORMAT = "%H:%M"


def reconstruct_ddl(handle: DatabaseHandle, schema: str, tables: Sequence[str]) -> str:
    """CREATE TABLE text for every table, in the given order, each framed by a separator and a header."""
    adapter = handle.adapter
    parts: List[str] = []
    try:
        with adapter.ddl_session(handle):
            for table in tables:
                logger.debug("Reconstructing DDL for %s.%s", schema, table)
                statement = adapter.show_create_table(handle, schema, table)
                parts.append(f"{SEPARATOR}\n===== TABLE: {table} =====\n{statement}\n")
    except ExportFailedError:
        raise
    except AdapterError as exc:
        raise ExportFailedError(f"Failed to reconstruct schema DDL: {exc}") from exc
    return "".join(parts)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def export_json(rows: List[Dict[str, Any]]) -> bytes:
    return json.dumps(rows, indent="\t", default=_json_default).encode("utf-8")


def _csv_value(value: Any) -> str:
    """Render one CSV cell.

    Naive datetimes are labelled UTC. Aware ones carry their tzinfo name, which
    for a bare fixed offset is of the form "UTC+02:00".
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return f"{value.strftime(CSV_TIME_FORMAT)} {value.tzname() or 'UTC'}"
    if isinstance(value, date):
        return value.strftime(CSV_DATE_FORMAT)
    if isinstance(value, time):
        return value.strftime(CSV_CLOCK_FORMAT)
    return str(value)


def export_csv(rows: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if rows:
        header = list(rows[0].keys())
        writer.writerow(header)
        for row in rows:
            writer.writerow([_csv_value(row.get(key)) for key in header])
    return buffer.getvalue()


def export_dir() -> Path:
    load_environments()
    raw = os.getenv("SQLWEB_EXPORT_DIR") or str(Path.home() / "sqlweb")
    return Path(raw).expanduser()


def write_export_file(file_name: str, payload: Union[str, bytes]) -> int:
    target_dir = export_dir()
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / file_name
        path.write_bytes(data)
    except OSError as exc:
        raise ExportFailedError(f"Failed to write export file '{file_name}': {exc}") from exc
    logger.info("Exported %d bytes to %s", len(data), path)
    return len(data)
