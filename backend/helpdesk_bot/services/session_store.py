# /helpdesk_bot/services/session_store.py

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional
import redis.asyncio as redis
from redis.exceptions import LockError
from pydantic import ValidationError

from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.conversation import ConversationSession
from helpdesk_bot.models.errors import SessionBusy

# Persistence for dialog sessions between turns. The in-memory store is for
# development and single-process runs; the Redis store keeps suspended flows
# across restarts and across workers. Each store also hands out the
# per-conversation lock that serializes turns among everything sharing it.

logger = logging.getLogger(__name__)


class SessionLocks:
    """One asyncio.Lock per conversation key, dropped once nobody holds or awaits it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class SessionStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[ConversationSession]:
        ...

    @abstractmethod
    async def save(self, session: ConversationSession) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def lock(self, key: str):
        """Async context manager held for the whole of one conversation turn."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: Dict[str, str] = {}
        self._locks = SessionLocks()

    async def get(self, key: str) -> Optional[ConversationSession]:
        raw = self._sessions.get(key)
        return ConversationSession.model_validate_json(raw) if raw else None

    async def save(self, session: ConversationSession) -> None:
        # Stored serialized so callers never share a live object between turns.
        self._sessions[session.key] = session.model_dump_json()

    async def delete(self, key: str) -> None:
        self._sessions.pop(key, None)

    def lock(self, key: str):
        return self._locks.hold(key)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    KEY_PREFIX = "dialog_session:"
    LOCK_PREFIX = "dialog_lock:"

    def __init__(self, redis_client, ttl: Optional[int] = None, lock_timeout: int = 60, lock_wait: float = 15.0):
        self.redis = redis_client
        self.ttl = ttl
        # lock_timeout must outlast the slowest turn (collaborator timeouts plus retries).
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait

    @classmethod
    def from_url(cls, redis_url: str, ttl: Optional[int] = None, **lock_options) -> "RedisSessionStore":
        pool = redis.ConnectionPool.from_url(redis_url, max_connections=20)
        return cls(redis.Redis(connection_pool=pool), ttl=ttl, **lock_options)

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}{key}"

    async def get(self, key: str) -> Optional[ConversationSession]:
        raw = await self.redis.get(self._key(key))
        if not raw:
            return None
        try:
            return ConversationSession.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupted dialog session {key}: {e}")
            await self.redis.delete(self._key(key))
            return None

    async def save(self, session: ConversationSession) -> None:
        payload = session.model_dump_json()
        if self.ttl:
            await self.redis.setex(self._key(session.key), self.ttl, payload)
        else:
            await self.redis.set(self._key(session.key), payload)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        lock = self.redis.lock(
            f"{self.LOCK_PREFIX}{key}",
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_wait,
        )
        try:
            acquired = await lock.acquire()
        except LockError as e:
            raise SessionBusy(f"Could not lock conversation {key}: {e}") from e
        if not acquired:
            raise SessionBusy(f"Conversation {key} still locked after {self.lock_wait}s")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                logger.warning(f"Lock for conversation {key} expired before release: {e}")

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()


def build_session_store(backend: str, redis_url: str, ttl: Optional[int], **lock_options) -> SessionStore:
    if backend == "redis":
        logger.info("Using Redis-backed dialog sessions.")
        return RedisSessionStore.from_url(redis_url, ttl=ttl, **lock_options)
    logger.info("Using in-memory dialog sessions.")
    return InMemorySessionStore()


# Globally accessible instance
session_store = build_session_store(
    settings.session_backend,
    settings.redis_url,
    settings.session_ttl_seconds,
    lock_timeout=settings.session_lock_timeout_seconds,
    lock_wait=settings.session_lock_wait_seconds,
)
