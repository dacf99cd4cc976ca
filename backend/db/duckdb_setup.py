"""
DuckDB-backed usage ledger
"""
from pathlib import Path

import duckdb

from db.usage_ledger import Admission, UsageLedger
from errors import StorageError
from logging_config import get_logger

logger = get_logger("gateway.ledger")


def init_duckdb(path: str = ":memory:") -> duckdb.DuckDBPyConnection:
    """Open the ledger database and create the counter table"""
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = duckdb.connect(path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_counts (
                identity VARCHAR NOT NULL,
                day      VARCHAR NOT NULL,
                calls    INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (identity, day)
            )
        """)
    except duckdb.Error as e:
        raise StorageError() from e

    logger.info("Usage ledger opened", backend="duckdb", path=path)
    return conn


def close_duckdb(conn):
    """Close DuckDB connection"""
    if conn:
        conn.close()
        logger.info("Usage ledger closed", backend="duckdb")


class DuckDBUsageLedger(UsageLedger):
    """Single-file durable ledger.

    Each admission runs as one DuckDB transaction and never awaits in the
    middle, so it is atomic within the process; a concurrent writer on another
    connection gets a transaction conflict, which surfaces as StorageError
    instead of a double admission. DuckDB allows one writing process per file;
    run several gateway processes against the Redis backend instead.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self._conn = conn

    async def get_count(self, identity: str, day: str) -> int:
        try:
            row = self._conn.execute(
                "SELECT calls FROM usage_counts WHERE identity = ? AND day = ?",
                [identity, day],
            ).fetchone()
        except duckdb.Error as e:
            logger.error("Usage read failed", error=str(e))
            raise StorageError() from e
        return int(row[0]) if row else 0

    async def admit_and_increment(self, identity: str, day: str, limit: int) -> Admission:
        if limit <= 0:
            return Admission(False, await self.get_count(identity, day))

        conn = self._conn
        try:
            conn.execute("BEGIN TRANSACTION")
            row = conn.execute(
                "SELECT calls FROM usage_counts WHERE identity = ? AND day = ?",
                [identity, day],
            ).fetchone()
            current = int(row[0]) if row else 0

            if current >= limit:
                conn.execute("ROLLBACK")
                return Admission(False, current)

            if row is None:
                conn.execute(
                    "INSERT INTO usage_counts (identity, day, calls) VALUES (?, ?, 1)",
                    [identity, day],
                )
            else:
                conn.execute(
                    "UPDATE usage_counts SET calls = calls + 1 WHERE identity = ? AND day = ?",
                    [identity, day],
                )
            conn.execute("COMMIT")
        except duckdb.Error as e:
            self._rollback_quietly()
            logger.error("Usage admission failed", error=str(e))
            raise StorageError() from e

        return Admission(True, current + 1)

    def _rollback_quietly(self):
        try:
            self._conn.execute("ROLLBACK")
        except duckdb.Error:
            # No open transaction left to roll back
            pass

    async def ping(self) -> bool:
        try:
            return self._conn.execute("SELECT 1").fetchone() is not None
        except duckdb.Error:
            return False

    async def close(self) -> None:
        close_duckdb(self._conn)
