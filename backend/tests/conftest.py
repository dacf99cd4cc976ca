"""
Shared fixtures for gateway tests.
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from db.duckdb_setup import DuckDBUsageLedger, init_duckdb
from services.identity import fingerprint
from services.schedule import ScheduleLookup

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TODAY = "2026-03-01"
UPSTREAM_KEY = "sk-test-upstream-secret"

SCHEDULE = {
    "01/03/2026": {"begin": "05:18", "end": "18:04"},
    "02/03/2026": {"begin": "05:17", "end": "18:05"},
}


def make_settings(**overrides) -> Settings:
    values: Dict[str, Any] = {
        "openai_api_key": UPSTREAM_KEY,
        "valid_api_keys": "k1,k2",
        "daily_limit": 2,
        "ledger_backend": "duckdb",
        "ledger_path": ":memory:",
        "cors_origin": "http://localhost:5173",
        "log_level": "warning",
        "debug": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def completion_body(content: Optional[str]) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


class FakeUpstream:
    """httpx.MockTransport handler that records every request it receives."""

    def __init__(self, status_code: int = 200, json_body: Any = None, text: Optional[str] = None,
                 exc: Optional[Exception] = None, delay: float = 0.0):
        self.status_code = status_code
        self.json_body = json_body if json_body is not None else completion_body("  Hello from upstream.  ")
        self.text = text
        self.exc = exc
        self.delay = delay
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def stored_count(ledger, api_key: str, day: str = TODAY) -> int:
    """Read a count straight from the ledger, outside any running loop."""
    return asyncio.run(ledger.get_count(fingerprint(api_key), day))


@pytest.fixture
def ledger():
    conn = init_duckdb(":memory:")
    yield DuckDBUsageLedger(conn)
    conn.close()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def schedule():
    return ScheduleLookup(SCHEDULE, today=lambda: date(2026, 3, 1))


@pytest.fixture
def client_factory(ledger, upstream, schedule):
    """Build a started TestClient; keyword overrides go to Settings."""
    from main import create_app

    opened = []

    def _make(ledger_override=None, upstream_override=None, **overrides):
        fake = upstream_override or upstream
        app = create_app(
            settings=make_settings(**overrides),
            ledger=ledger_override or ledger,
            http_client=fake.client(),
            clock=lambda: NOW,
            schedule=schedule,
        )
        client = TestClient(app)
        client.__enter__()
        opened.append(client)
        return client

    yield _make

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def client(client_factory):
    return client_factory()
