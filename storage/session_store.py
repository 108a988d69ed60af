"""Session persistence with Redis backend and in-memory fallback.

Sessions are keyed by an opaque player identifier. Durability and
per-player locking are the store's concern, not the engine's.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from config import config
from engine.session import Session, new_session
from storage.serialization import session_from_dict, session_to_dict

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Abstract session store."""

    @abstractmethod
    async def get(self, player_id: str) -> dict[str, Any] | None:
        """Get session data."""
        ...

    @abstractmethod
    async def set(self, player_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        """Set session data."""
        ...

    @abstractmethod
    async def delete(self, player_id: str) -> None:
        """Delete session."""
        ...

    @abstractmethod
    async def exists(self, player_id: str) -> bool:
        """Check if session exists."""
        ...


class InMemorySessionStore(SessionStore):
    """In-memory session store for local development and tests."""

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[dict[str, Any], datetime]] = {}

    async def get(self, player_id: str) -> dict[str, Any] | None:
        if player_id not in self._sessions:
            return None

        data, expiry = self._sessions[player_id]
        if expiry < datetime.now():
            await self.delete(player_id)
            return None

        return data

    async def set(
        self,
        player_id: str,
        data: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        ttl = ttl or config.session_ttl
        expiry = datetime.now() + timedelta(seconds=ttl)
        self._sessions[player_id] = (data, expiry)

    async def delete(self, player_id: str) -> None:
        self._sessions.pop(player_id, None)

    async def exists(self, player_id: str) -> bool:
        return await self.get(player_id) is not None

    async def cleanup_expired(self) -> int:
        """Remove expired sessions."""
        now = datetime.now()
        expired = [pid for pid, (_, expiry) in self._sessions.items() if expiry < now]
        for pid in expired:
            del self._sessions[pid]
        return len(expired)


class RedisSessionStore(SessionStore):
    """Redis-backed session store."""

    def __init__(self, redis_client: "redis.Redis") -> None:
        self._redis = redis_client
        self._prefix = "blackjack:session:"

    def _key(self, player_id: str) -> str:
        """Get Redis key for session."""
        return f"{self._prefix}{player_id}"

    async def get(self, player_id: str) -> dict[str, Any] | None:
        data = await self._redis.get(self._key(player_id))
        if data is None:
            return None
        return json.loads(data)

    async def set(
        self,
        player_id: str,
        data: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        ttl = ttl or config.session_ttl
        await self._redis.setex(self._key(player_id), ttl, json.dumps(data))

    async def delete(self, player_id: str) -> None:
        await self._redis.delete(self._key(player_id))

    async def exists(self, player_id: str) -> bool:
        return await self._redis.exists(self._key(player_id)) > 0


# Global session store instance
_session_store: SessionStore | None = None


async def get_session_store() -> SessionStore:
    """Get or create the session store, preferring Redis when it answers."""
    global _session_store

    if _session_store is not None:
        return _session_store

    if config.redis.enabled:
        try:
            redis_client = redis.from_url(config.redis.url)
            await redis_client.ping()
            _session_store = RedisSessionStore(redis_client)
            logger.info("Using Redis session store at %s:%d", config.redis.host, config.redis.port)
            return _session_store
        except (RedisError, OSError) as exc:
            logger.warning("Redis unavailable (%s), using in-memory session store", exc)

    _session_store = InMemorySessionStore()
    return _session_store


def set_session_store(store: SessionStore | None) -> None:
    """Install a specific store (or clear the cached one)."""
    global _session_store
    _session_store = store


async def load_session(player_id: str) -> Session:
    """Load a player's session, creating and storing a fresh one if absent."""
    store = await get_session_store()
    data = await store.get(player_id)
    if data is not None:
        return session_from_dict(data)

    session = new_session()
    await store.set(player_id, session_to_dict(session))
    logger.debug("Created session for player %s", player_id)
    return session


async def save_session(player_id: str, session: Session) -> None:
    """Store the session wholesale."""
    store = await get_session_store()
    await store.set(player_id, session_to_dict(session))


async def delete_session(player_id: str) -> None:
    """Delete a player's session."""
    store = await get_session_store()
    await store.delete(player_id)
