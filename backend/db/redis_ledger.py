"""
Redis-backed usage ledger for multi-process deployments
"""
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from db.usage_ledger import Admission, UsageLedger
from errors import StorageError
from logging_config import get_logger

# Runs server-side as one atomic unit: no other command on the key can land
# between the comparison and the INCR.
ADMIT_SCRIPT = """
local limit = tonumber(ARGV[1])
local current = tonumber(redis.call('GET', KEYS[1]) or '0')
if current >= limit then
    return {0, current}
end
current = redis.call('INCR', KEYS[1])
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[2]))
return {1, current}
"""


class RedisUsageLedger(UsageLedger):
    def __init__(self, redis_url: str, ttl_seconds: int = 2 * 24 * 3600, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("gateway.ledger")
        self._redis = client if client is not None else redis.from_url(redis_url)
        self._admit = self._redis.register_script(ADMIT_SCRIPT)

    def _make_key(self, identity: str, day: str) -> str:
        return f"usage:{identity}:{day}"

    async def get_count(self, identity: str, day: str) -> int:
        try:
            value = await self._redis.get(self._make_key(identity, day))
        except RedisError as e:
            self.logger.error("Usage read failed", error=str(e))
            raise StorageError() from e

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return int(value) if value is not None else 0

    async def admit_and_increment(self, identity: str, day: str, limit: int) -> Admission:
        if limit <= 0:
            return Admission(False, await self.get_count(identity, day))

        try:
            admitted, count = await self._admit(
                keys=[self._make_key(identity, day)],
                args=[limit, self.ttl_seconds],
            )
        except RedisError as e:
            self.logger.error("Usage admission failed", error=str(e))
            raise StorageError() from e

        return Admission(bool(int(admitted)), int(count))

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._redis.aclose()
