from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Tuple

from adapters.base import AdapterError, NoActiveConnectionError
from adapters.models import ConnectionProfile, TableColumns
from client.session import ClientState, SqlClient


logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"


class SessionRegistry:
    """Live clients keyed by a caller-supplied session id, each with its own connection."""

    def __init__(self, client_factory: Callable[[], SqlClient] = SqlClient):
        self._client_factory = client_factory
        self._clients: Dict[str, SqlClient] = {}
        self._lock = threading.Lock()

    def connect(self, session_id: str, profile: ConnectionProfile) -> Tuple[SqlClient, str, List[TableColumns]]:
        client = self._client_factory()
        schema_name, tables = client.connect(profile)
        with self._lock:
            previous = self._clients.get(session_id)
            self._clients[session_id] = client
        if previous is not None and previous.state is ClientState.CONNECTED:
            try:
                previous.disconnect()
            except AdapterError:
                logger.warning("Failed to close replaced session '%s'", session_id, exc_info=True)
        return client, schema_name, tables

    def get(self, session_id: str) -> SqlClient:
        with self._lock:
            client = self._clients.get(session_id)
        if client is None:
            raise NoActiveConnectionError(f"no active database connection for session '{session_id}'")
        return client

    def disconnect(self, session_id: str) -> None:
        with self._lock:
            client = self._clients.pop(session_id, None)
        if client is None:
            raise NoActiveConnectionError(f"no active database connection for session '{session_id}'")
        client.disconnect()

    def session_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._clients)

    def close_all(self) -> None:
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()
        for session_id, client in clients:
            if client.state is not ClientState.CONNECTED:
                continue
            try:
                client.disconnect()
            except AdapterError:
                logger.warning("Failed to close session '%s'", session_id, exc_info=True)
