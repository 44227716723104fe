import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from adapters.models import ConnectionProfile
from utils.env_loader import load_environments


DEFAULT_HISTORY_FILE = Path.home() / ".config" / "sqlweb" / "connection_history.json"


def history_file() -> Path:
    load_environments()
    raw = os.getenv("SQLWEB_HISTORY_FILE")
    return Path(raw).expanduser() if raw else DEFAULT_HISTORY_FILE


def _read_history() -> List[Dict[str, Any]]:
    path = history_file()
    if not path.exists():
        return []
    return json.loads(path.read_text(encoding="utf-8") or "[]")


def _write_history(items: List[Dict[str, Any]]) -> None:
    path = history_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(items, indent="\t"), encoding="utf-8")


def append_connection(key: str, profile: ConnectionProfile) -> Dict[str, Any]:
    items = _read_history()
    record = {"key": key, "connection": profile.to_dict()}
    items.append(record)
    _write_history(items)
    return record


def read_connection(key: str) -> Optional[ConnectionProfile]:
    for item in _read_history():
        if item.get("key") == key:
            return ConnectionProfile.from_dict(item.get("connection") or {})
    return None


def list_connections() -> List[ConnectionProfile]:
    return [ConnectionProfile.from_dict(item.get("connection") or {}) for item in _read_history()]
