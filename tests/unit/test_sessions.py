"""
Unit tests for the session store.
"""

import pytest

from pipeline.sessions import SessionStore


class TestSessionStore:
    """Tests for SessionStore."""

    @pytest.fixture
    def store(self, fake_redis) -> SessionStore:
        return SessionStore(fake_redis, ttl_seconds=60)

    async def test_touch_creates_session_with_ttl(self, store: SessionStore, fake_redis):
        await store.touch("abc")

        assert fake_redis.ttls["sess:abc"] == 60
        assert await store.get_messages("abc") == 0
        assert await store.count_active() == 1

    async def test_touch_keeps_existing_counter(self, store: SessionStore):
        await store.increment_messages("abc")
        await store.touch("abc")

        assert await store.get_messages("abc") == 1

    async def test_increment_messages(self, store: SessionStore):
        assert await store.increment_messages("abc") == 1
        assert await store.increment_messages("abc") == 2
        assert await store.get_messages("other") == 0

    async def test_reset(self, store: SessionStore):
        await store.increment_messages("abc")
        await store.touch("def")

        await store.reset("abc")

        assert await store.get_messages("abc") == 0
        assert await store.count_active() == 1
