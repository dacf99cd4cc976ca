"""
Per-identity, per-day usage ledger.

The ledger is the only shared mutable state in the gateway. Counts are keyed
by (identity fingerprint, UTC day). The check against the daily limit and the
increment happen in one store-level atomic operation, so concurrent requests
from one caller can never be admitted past the limit, no matter how many
gateway processes share the store.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from config import Settings

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Admission:
    admitted: bool
    count: int


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_day(now: Optional[datetime] = None) -> str:
    """``YYYY-MM-DD`` of the given instant in UTC; naive values are taken as UTC"""
    now = now or utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")


class UsageLedger:
    """Store contract. Implementations raise ``errors.StorageError`` when unreachable."""

    async def get_count(self, identity: str, day: str) -> int:
        raise NotImplementedError

    async def admit_and_increment(self, identity: str, day: str, limit: int) -> Admission:
        raise NotImplementedError

    async def ping(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        pass


def open_ledger(settings: Settings) -> UsageLedger:
    """Build the configured ledger backend"""
    if settings.ledger_backend == "redis":
        from db.redis_ledger import RedisUsageLedger
        return RedisUsageLedger(settings.redis_url, ttl_seconds=settings.usage_ttl_seconds)

    from db.duckdb_setup import DuckDBUsageLedger, init_duckdb
    return DuckDBUsageLedger(init_duckdb(settings.ledger_path))
