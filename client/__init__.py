"""Session facade over the adapter layer: browsing, updates, ad-hoc queries and exports."""

from client.registry import DEFAULT_SESSION_ID, SessionRegistry
from client.session import ClientState, SqlClient

__all__ = ["ClientState", "DEFAULT_SESSION_ID", "SessionRegistry", "SqlClient"]
