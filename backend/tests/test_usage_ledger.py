"""
Tests for the usage ledger contract, run against the DuckDB backend.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from config import Settings
from db.duckdb_setup import DuckDBUsageLedger, init_duckdb
from db.usage_ledger import Admission, open_ledger, utc_day
from errors import StorageError

DAY = "2026-03-01"


class TestUtcDay:

    def test_aware_timestamps_are_converted(self):
        # 01:00 at +05:00 is still the previous UTC day
        now = datetime(2026, 3, 1, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        assert utc_day(now) == "2026-02-28"

    def test_naive_timestamps_are_taken_as_utc(self):
        assert utc_day(datetime(2026, 3, 1, 23, 59)) == "2026-03-01"

    def test_defaults_to_now(self):
        assert utc_day() == datetime.now(timezone.utc).strftime("%Y-%m-%d")


class TestDuckDBUsageLedger:

    @pytest.mark.asyncio
    async def test_unseen_identity_counts_zero(self, ledger):
        assert await ledger.get_count("never-seen", DAY) == 0

    @pytest.mark.asyncio
    async def test_admit_increments(self, ledger):
        assert await ledger.admit_and_increment("alice", DAY, 3) == Admission(True, 1)
        assert await ledger.admit_and_increment("alice", DAY, 3) == Admission(True, 2)
        assert await ledger.get_count("alice", DAY) == 2

    @pytest.mark.asyncio
    async def test_denial_leaves_count_unchanged(self, ledger):
        for _ in range(2):
            await ledger.admit_and_increment("alice", DAY, 2)

        assert await ledger.admit_and_increment("alice", DAY, 2) == Admission(False, 2)
        assert await ledger.admit_and_increment("alice", DAY, 2) == Admission(False, 2)
        assert await ledger.get_count("alice", DAY) == 2

    @pytest.mark.asyncio
    async def test_lowered_limit_denies(self, ledger):
        for _ in range(3):
            await ledger.admit_and_increment("alice", DAY, 5)
        assert await ledger.admit_and_increment("alice", DAY, 2) == Admission(False, 3)

    @pytest.mark.asyncio
    async def test_zero_limit_never_writes(self, ledger):
        assert await ledger.admit_and_increment("alice", DAY, 0) == Admission(False, 0)
        assert await ledger.get_count("alice", DAY) == 0

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, ledger):
        await ledger.admit_and_increment("alice", DAY, 1)

        assert await ledger.admit_and_increment("alice", "2026-03-02", 1) == Admission(True, 1)
        assert await ledger.admit_and_increment("bob", DAY, 1) == Admission(True, 1)
        assert await ledger.admit_and_increment("alice", DAY, 1) == Admission(False, 1)

    @pytest.mark.asyncio
    async def test_concurrent_admissions_never_exceed_limit(self, ledger):
        results = await asyncio.gather(*[ledger.admit_and_increment("alice", DAY, 5) for _ in range(25)])

        admitted = [r for r in results if r.admitted]
        assert len(admitted) == 5
        assert sorted(r.count for r in admitted) == [1, 2, 3, 4, 5]
        assert await ledger.get_count("alice", DAY) == 5

    @pytest.mark.asyncio
    async def test_counts_survive_reopen(self, tmp_path):
        path = str(tmp_path / "ledger" / "usage.duckdb")

        first = DuckDBUsageLedger(init_duckdb(path))
        await first.admit_and_increment("alice", DAY, 10)
        await first.admit_and_increment("alice", DAY, 10)
        await first.close()

        second = DuckDBUsageLedger(init_duckdb(path))
        try:
            assert await second.get_count("alice", DAY) == 2
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_closed_store_raises_storage_error(self):
        ledger = DuckDBUsageLedger(init_duckdb(":memory:"))
        await ledger.close()

        assert await ledger.ping() is False
        with pytest.raises(StorageError):
            await ledger.get_count("alice", DAY)
        with pytest.raises(StorageError):
            await ledger.admit_and_increment("alice", DAY, 5)

    @pytest.mark.asyncio
    async def test_ping(self, ledger):
        assert await ledger.ping() is True


def test_open_ledger_defaults_to_duckdb(tmp_path):
    settings = Settings(_env_file=None, ledger_backend="duckdb", ledger_path=str(tmp_path / "usage.duckdb"))
    ledger = open_ledger(settings)
    try:
        assert isinstance(ledger, DuckDBUsageLedger)
    finally:
        asyncio.run(ledger.close())
