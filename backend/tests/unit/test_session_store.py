# backend/tests/unit/test_session_store.py
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from redis.exceptions import LockNotOwnedError

from helpdesk_bot.models.conversation import ConversationSession, conversation_key
from helpdesk_bot.models.errors import SessionBusy
from helpdesk_bot.models.flow import FlowFrame, PendingPrompt, PromptType
from helpdesk_bot.services.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    build_session_store,
)


def suspended_session(key="web:user-1:conv-1"):
    return ConversationSession(
        key=key,
        flow_stack=[FlowFrame(flow_name="SubmitTicket", step_index=1, dialog_data={"description": "vpn down"})],
        pending_prompt=PendingPrompt(
            flow_name="SubmitTicket",
            step_index=1,
            prompt_type=PromptType.CHOICE,
            text="Which severity?",
            choices=["high", "normal", "low"],
        ),
    )


def test_conversation_key_combines_channel_user_and_conversation():
    assert conversation_key("web", "user-1", "conv-1") == "web:user-1:conv-1"
    assert conversation_key("web", "user-1", "conv-1") != conversation_key("teams", "user-1", "conv-1")


@pytest.mark.asyncio
async def test_in_memory_store_round_trip_and_isolation():
    store = InMemorySessionStore()
    session = suspended_session()
    await store.save(session)

    loaded = await store.get(session.key)
    assert loaded == session
    assert loaded is not session

    loaded.active_frame.dialog_data["severity"] = "high"
    assert "severity" not in (await store.get(session.key)).active_frame.dialog_data

    await store.delete(session.key)
    assert await store.get(session.key) is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_redis_store_saves_with_ttl_and_prefix():
    redis_client = AsyncMock()
    store = RedisSessionStore(redis_client, ttl=600)
    session = suspended_session()

    await store.save(session)

    key, ttl, payload = redis_client.setex.await_args.args
    assert key == "dialog_session:web:user-1:conv-1"
    assert ttl == 600
    assert ConversationSession.model_validate_json(payload) == session
    redis_client.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_store_without_ttl_keeps_sessions_indefinitely():
    redis_client = AsyncMock()
    store = RedisSessionStore(redis_client)

    await store.save(suspended_session())

    redis_client.set.assert_awaited_once()
    redis_client.setex.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_store_loads_session():
    session = suspended_session()
    redis_client = AsyncMock()
    redis_client.get.return_value = session.model_dump_json().encode()

    loaded = await RedisSessionStore(redis_client).get(session.key)

    redis_client.get.assert_awaited_once_with("dialog_session:web:user-1:conv-1")
    assert loaded.pending_prompt.choices == ["high", "normal", "low"]


@pytest.mark.asyncio
async def test_redis_store_discards_corrupted_session():
    redis_client = AsyncMock()
    redis_client.get.return_value = b'{"flow_stack": "not a list"}'

    assert await RedisSessionStore(redis_client).get("k") is None
    redis_client.delete.assert_awaited_once_with("dialog_session:k")


@pytest.mark.asyncio
async def test_redis_store_missing_session():
    redis_client = AsyncMock()
    redis_client.get.return_value = None

    assert await RedisSessionStore(redis_client).get("k") is None


def test_build_session_store_defaults_to_memory():
    assert isinstance(build_session_store("memory", "redis://localhost:6379", None), InMemorySessionStore)


def test_build_session_store_redis():
    store = build_session_store("redis", "redis://localhost:6379", 60)
    assert isinstance(store, RedisSessionStore)
    assert store.ttl == 60


def test_store_without_lock_cannot_be_created():
    class NoLockStore(SessionStore):
        async def get(self, key):
            return None

        async def save(self, session):
            pass

        async def delete(self, key):
            pass

    with pytest.raises(TypeError):
        NoLockStore()


def redis_with_lock(acquired=True):
    redis_lock = MagicMock()
    redis_lock.acquire = AsyncMock(return_value=acquired)
    redis_lock.release = AsyncMock()
    redis_client = MagicMock()
    redis_client.lock.return_value = redis_lock
    return redis_client, redis_lock


@pytest.mark.asyncio
async def test_redis_lock_is_held_for_the_turn():
    redis_client, redis_lock = redis_with_lock()
    store = RedisSessionStore(redis_client, lock_timeout=60, lock_wait=5)

    async with store.lock("web:user-1:conv-1"):
        redis_lock.release.assert_not_awaited()

    redis_client.lock.assert_called_once_with(
        "dialog_lock:web:user-1:conv-1", timeout=60, blocking_timeout=5
    )
    redis_lock.acquire.assert_awaited_once()
    redis_lock.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_lock_not_acquired_in_time_raises_busy():
    redis_client, redis_lock = redis_with_lock(acquired=False)
    store = RedisSessionStore(redis_client, lock_wait=0.1)

    with pytest.raises(SessionBusy):
        async with store.lock("k"):
            pass
    redis_lock.release.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_lock_released_on_error_and_expiry_is_tolerated():
    redis_client, redis_lock = redis_with_lock()
    redis_lock.release.side_effect = LockNotOwnedError("expired")
    store = RedisSessionStore(redis_client)

    with pytest.raises(RuntimeError):
        async with store.lock("k"):
            raise RuntimeError("step failed")
    redis_lock.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_in_memory_lock_serializes_holders():
    store = InMemorySessionStore()
    events = []

    async def turn(name):
        async with store.lock("k"):
            events.append(f"{name}-in")
            await asyncio.sleep(0)
            events.append(f"{name}-out")

    await asyncio.gather(turn("a"), turn("b"))
    assert events == ["a-in", "a-out", "b-in", "b-out"]
