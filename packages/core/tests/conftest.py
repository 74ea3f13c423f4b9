"""Shared fixtures for sqlite-mcp tests."""

import os

import pytest

from sqlite_mcp.config import reset_settings
from sqlite_mcp.db.connection import ConnectionCache
from sqlite_mcp.db.executor import QueryExecutor, TransactionRunner
from sqlite_mcp.dispatcher import ToolDispatcher


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate every test from SQLITE_MCP_* variables and cached settings."""
    for key in list(os.environ):
        if key.startswith("SQLITE_MCP_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache():
    cache = ConnectionCache()
    yield cache
    cache.release_all()


@pytest.fixture
def executor(cache) -> QueryExecutor:
    return QueryExecutor(cache)


@pytest.fixture
def tx_runner(executor) -> TransactionRunner:
    return TransactionRunner(executor)


@pytest.fixture
def dispatcher(executor) -> ToolDispatcher:
    return ToolDispatcher.from_executor(executor)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "test.db")
