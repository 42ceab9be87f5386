"""
Browser session counters kept in the session store.

Each session is a hash at ``sess:<id>`` with a sliding expiry. The only
field is the number of messages sent from that session.
"""

from redis.asyncio import Redis

from pipeline.constants import SESSION_KEY_PREFIX

MESSAGES_FIELD = "messages"


class SessionStore:
    """Session bookkeeping on top of a Redis client."""

    def __init__(self, client: Redis, ttl_seconds: int):
        self._client = client
        self._ttl = ttl_seconds

    @staticmethod
    def key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    async def touch(self, session_id: str) -> None:
        """Create the session if needed and push its expiry forward."""
        key = self.key(session_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hsetnx(key, MESSAGES_FIELD, 0)
            pipe.expire(key, self._ttl)
            await pipe.execute()

    async def increment_messages(self, session_id: str) -> int:
        """Count one more message sent from this session."""
        key = self.key(session_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hincrby(key, MESSAGES_FIELD, 1)
            pipe.expire(key, self._ttl)
            count, _ = await pipe.execute()
        return int(count)

    async def get_messages(self, session_id: str) -> int:
        value = await self._client.hget(self.key(session_id), MESSAGES_FIELD)
        return int(value) if value is not None else 0

    async def reset(self, session_id: str) -> None:
        await self._client.delete(self.key(session_id))

    async def count_active(self) -> int:
        """Number of live sessions. Walks the keyspace, so keep it off hot paths."""
        count = 0
        async for _ in self._client.scan_iter(match=f"{SESSION_KEY_PREFIX}*"):
            count += 1
        return count
