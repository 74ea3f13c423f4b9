"""Database connection management.

One SQLAlchemy connection is kept open per canonical database path. The
cache enforces a connection ceiling: when it is full, connections idle for
longer than the idle timeout are closed first, then the least recently used
one. Every entry carries a lock that serializes statement execution and
whole transactions on its handle.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import Connection, Engine, create_engine, event
from sqlalchemy.engine import URL
from sqlalchemy.pool import StaticPool

from sqlite_mcp.config import Settings, get_settings
from sqlite_mcp.db.paths import resolve_db_path
from sqlite_mcp.errors import DatabaseError, InvalidPath, classify_database_error

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 50
DEFAULT_IDLE_TIMEOUT_SECONDS = 30 * 60


def create_sqlite_engine(path: str, busy_timeout_seconds: float | None = None) -> Engine:
    """Create a single-connection engine for one SQLite file.

    The driver is put in autocommit mode and SQLAlchemy emits an explicit
    BEGIN for every transaction, so BEGIN/COMMIT/ROLLBACK are exactly what
    reaches the engine. Every new DB-API connection is switched to WAL.
    """
    connect_args: dict[str, Any] = {"check_same_thread": False}
    if busy_timeout_seconds is not None:
        connect_args["timeout"] = busy_timeout_seconds

    engine = create_engine(
        URL.create("sqlite", database=path),
        poolclass=StaticPool,
        connect_args=connect_args,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@dataclass(eq=False)
class ConnectionEntry:
    """A cached connection to one database file."""

    canonical_path: str
    engine: Engine
    handle: Connection
    last_accessed: float
    lock: threading.RLock = field(default_factory=threading.RLock)
    closed: bool = False

    def close(self) -> None:
        """Close the handle and dispose of its engine."""
        if self.closed:
            return
        self.closed = True
        try:
            self.handle.close()
        finally:
            self.engine.dispose()


class ConnectionCache:
    """Cache of open database connections keyed by canonical path.

    Retrieve-or-create is atomic: the mapping is only read or mutated while
    holding the cache lock, and a new connection is opened under it.
    """

    def __init__(
        self,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        idle_timeout_seconds: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        busy_timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_connections < 1:
            raise ValueError("max_connections must be at least 1")
        self.max_connections = max_connections
        self.idle_timeout_seconds = idle_timeout_seconds
        self.busy_timeout_seconds = busy_timeout_seconds
        self._clock = clock
        self._entries: dict[str, ConnectionEntry] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ConnectionCache":
        """Build a cache sized by the application settings."""
        settings = settings or get_settings()
        return cls(
            max_connections=settings.max_connections,
            idle_timeout_seconds=settings.idle_timeout_seconds,
            busy_timeout_seconds=settings.busy_timeout_seconds,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, raw_path) -> bool:
        try:
            path = resolve_db_path(raw_path)
        except InvalidPath:
            return False
        return path in self._entries

    # =========================================================================
    # Acquire / release
    # =========================================================================

    def acquire(self, raw_path) -> ConnectionEntry:
        """Return the cached entry for a path, opening a connection if needed.

        Args:
            raw_path: Database path as supplied by the caller.

        Returns:
            The connection entry; repeated calls for the same path return the
            same entry and handle.

        Raises:
            InvalidPath: If the path is rejected.
            DatabaseError: If the database cannot be opened.
        """
        path = resolve_db_path(raw_path)

        with self._lock:
            entry = self._entries.get(path)
            if entry is not None:
                entry.last_accessed = self._clock()
                return entry

            if len(self._entries) >= self.max_connections:
                self._evict_for_capacity()

            entry = self._open(path)
            self._entries[path] = entry
            logger.info(f"Opened database {path} ({len(self._entries)} open)")
            return entry

    @contextmanager
    def checkout(self, raw_path) -> Iterator[ConnectionEntry]:
        """Acquire an entry and hold its lock for the duration of the block.

        An entry evicted between ``acquire`` and taking its lock is closed;
        in that case the path is acquired again, opening a fresh connection.

        Raises:
            InvalidPath: If the path is rejected.
            DatabaseError: If the database cannot be opened.
        """
        while True:
            entry = self.acquire(raw_path)
            entry.lock.acquire()
            if not entry.closed:
                break
            entry.lock.release()
            logger.debug(f"Connection to {entry.canonical_path} was evicted before use, reopening")

        try:
            yield entry
        finally:
            entry.lock.release()

    def release(self, raw_path) -> None:
        """Close and forget the connection for one path (no-op if absent)."""
        path = resolve_db_path(raw_path)
        with self._lock:
            entry = self._entries.pop(path, None)
        if entry is None:
            return
        with entry.lock:
            entry.close()
        logger.info(f"Closed database {path}")

    def release_all(self) -> None:
        """Close every cached connection."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            with entry.lock:
                try:
                    entry.close()
                except Exception as e:
                    logger.warning(f"Failed to close {entry.canonical_path}: {e}")
        if entries:
            logger.info(f"Closed {len(entries)} database connection(s)")

    # =========================================================================
    # Eviction
    # =========================================================================

    def evict_idle(self) -> int:
        """Close every connection idle longer than the idle timeout.

        Returns:
            Number of connections closed.
        """
        with self._lock:
            return self._evict_idle_locked()

    async def start_idle_sweep(self, interval_seconds: float) -> None:
        """Start a background loop that evicts idle connections.

        Args:
            interval_seconds: Seconds between sweeps.
        """
        if self._sweep_task is not None:
            return

        async def sweep_loop():
            while True:
                try:
                    await asyncio.sleep(interval_seconds)
                    evicted = await asyncio.to_thread(self.evict_idle)
                    if evicted:
                        logger.info(f"Idle sweep closed {evicted} connection(s)")
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.exception(f"Idle sweep error: {e}")

        self._sweep_task = asyncio.create_task(sweep_loop())
        logger.info(f"Started idle sweep (interval: {interval_seconds}s)")

    async def stop_idle_sweep(self) -> None:
        """Stop the background idle sweep."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            logger.info("Stopped idle sweep")

    def _evict_idle_locked(self) -> int:
        now = self._clock()
        evicted = 0
        for path, entry in list(self._entries.items()):
            if now - entry.last_accessed <= self.idle_timeout_seconds:
                continue
            if self._try_close(entry):
                del self._entries[path]
                evicted += 1
                logger.debug(f"Evicted idle connection {path}")
        return evicted

    def _evict_for_capacity(self) -> None:
        self._evict_idle_locked()
        if len(self._entries) < self.max_connections:
            return

        by_age = sorted(self._entries.items(), key=lambda item: item[1].last_accessed)
        for path, entry in by_age:
            if self._try_close(entry):
                del self._entries[path]
                logger.debug(f"Evicted least recently used connection {path}")
                return
        logger.warning(
            f"Connection cache is full ({len(self._entries)}) and every connection is busy"
        )

    @staticmethod
    def _try_close(entry: ConnectionEntry) -> bool:
        # Never block on a connection that is executing
        if not entry.lock.acquire(blocking=False):
            return False
        try:
            entry.close()
        except Exception as e:
            logger.warning(f"Failed to close {entry.canonical_path}: {e}")
        finally:
            entry.lock.release()
        return True

    # =========================================================================
    # Opening
    # =========================================================================

    def _open(self, path: str) -> ConnectionEntry:
        engine = None
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            engine = create_sqlite_engine(path, self.busy_timeout_seconds)
            handle = engine.connect()
        except Exception as e:
            if engine is not None:
                engine.dispose()
            failure = classify_database_error(e, path)
            logger.error(f"Failed to open database {path}: {failure.type.value}: {failure.message}")
            raise DatabaseError(
                failure.message, error_type=failure.type, path=path, original=e
            ) from e

        return ConnectionEntry(
            canonical_path=path,
            engine=engine,
            handle=handle,
            last_accessed=self._clock(),
        )

    def stats(self) -> dict[str, Any]:
        """Snapshot of the cache state."""
        now = self._clock()
        with self._lock:
            return {
                "open": len(self._entries),
                "max_connections": self.max_connections,
                "idle_timeout_seconds": self.idle_timeout_seconds,
                "connections": [
                    {"path": path, "idle_seconds": round(now - entry.last_accessed, 1)}
                    for path, entry in self._entries.items()
                ],
            }
