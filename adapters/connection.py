from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Iterator

from adapters.base import (
    AdapterError,
    ConnectionFailedError,
    DatabaseAdapter,
    NoActiveConnectionError,
    execute,
)
from adapters.factory import get_adapter
from adapters.models import ConnectionProfile
from utils.env_loader import load_environments


logger = logging.getLogger(__name__)


def _connect_timeout() -> float:
    load_environments()
    return float(os.getenv("SQLWEB_CONNECT_TIMEOUT", "10"))


class DatabaseHandle:
    """An open DB-API connection plus the dialect it speaks.

    Cursor use is serialized with a lock so one handle can be shared by
    concurrent requests.
    """

    def __init__(self, connection: Any, adapter: DatabaseAdapter, dsn: str = ""):
        self.connection = connection
        self.adapter = adapter
        self.dsn = dsn
        self._lock = threading.RLock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def cursor(self) -> Iterator[Any]:
        with self._lock:
            if self._closed:
                raise NoActiveConnectionError("database connection is closed")
            cur = self.connection.cursor()
            try:
                yield cur
            finally:
                cur.close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise ConnectionFailedError("database connection is already closed")
            self._closed = True
            self.connection.close()


def ping(handle: DatabaseHandle) -> None:
    with handle.cursor() as cur:
        execute(cur, handle.adapter.template("ping"))
        cur.fetchall()


def connect(profile: ConnectionProfile) -> DatabaseHandle:
    adapter = get_adapter(profile.dialect)
    try:
        dsn = adapter.build_dsn(profile)
    except ValueError as exc:
        raise ConnectionFailedError(f"Invalid connection settings: {exc}") from exc

    logger.info("Connecting to %s using %s", adapter.kind.value, adapter.redacted_dsn(profile))
    try:
        raw = adapter.open_connection(profile, timeout=_connect_timeout())
    except AdapterError:
        raise
    except Exception as exc:
        raise ConnectionFailedError(f"Failed to connect to the database: {exc}") from exc

    handle = DatabaseHandle(raw, adapter, dsn=dsn)
    try:
        ping(handle)
    except Exception as exc:
        try:
            handle.close()
        except Exception:
            logger.warning("Closing connection after failed ping also failed", exc_info=True)
        raise ConnectionFailedError(f"Database did not answer the liveness probe: {exc}") from exc
    return handle


def disconnect(handle: DatabaseHandle) -> None:
    try:
        handle.close()
    except AdapterError:
        raise
    except Exception as exc:
        raise ConnectionFailedError(f"Failed to disconnect from database: {exc}") from exc
    logger.info("Disconnected from %s", handle.adapter.kind.value)
