"""Session persistence collaborator for the round engine."""

from storage.serialization import session_from_dict, session_to_dict
from storage.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    delete_session,
    get_session_store,
    load_session,
    save_session,
    set_session_store,
)

__all__ = [
    "session_from_dict",
    "session_to_dict",
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
    "delete_session",
    "get_session_store",
    "load_session",
    "save_session",
    "set_session_store",
]
