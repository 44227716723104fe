import os
from pathlib import Path
from typing import Optional, Set


_loaded: Set[Path] = set()


def load_environments(env_path: Optional[str] = None) -> None:
    """Copy KEY=VALUE pairs from a dotenv file into os.environ without overriding set variables.

    The file defaults to SQLWEB_ENV_FILE, then ./.env; each file is read once per process.
    """
    env_file = Path(env_path or os.getenv("SQLWEB_ENV_FILE") or ".env").expanduser().resolve()
    if env_file in _loaded or not env_file.exists():
        return
    _loaded.add(env_file)

    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key and key not in os.environ:
            os.environ[key] = value
