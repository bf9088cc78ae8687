"""Campaign store — one sqlite3 connection shared by every repo."""
from __future__ import annotations

import contextlib
import importlib
import logging
import pathlib
import sqlite3
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_MIGRATIONS = [
    "001_initial",
]


class Database:
    """Owns the single connection the stat-store and encounter repos write through.

    Every repo call goes through :meth:`get_connection`, so statements from
    one process never interleave. ``EncounterRepo.save_if_unchanged`` depends
    on that: its ``UPDATE ... WHERE version = ?`` is the whole compare-and-swap,
    and a second connection to the same file would only be serialized by
    sqlite's own write lock.
    """

    def __init__(self, db_path: str = MEMORY) -> None:
        self.db_path = db_path
        self._connection: sqlite3.Connection | None = None
        if db_path != MEMORY:
            pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY

    def applied_versions(self) -> set[int]:
        conn = self._connect()
        conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
        return {row[0] for row in conn.execute("SELECT version FROM schema_version")}

    def initialize(self) -> None:
        """Bring the schema up to date. Safe to call on every start."""
        conn = self._connect()
        applied = self.applied_versions()
        for version, name in enumerate(_MIGRATIONS, 1):
            if version in applied:
                continue
            migration = importlib.import_module(f"digital_adventure.storage.migrations.{name}")
            migration.upgrade(conn)
            conn.execute("INSERT INTO schema_version VALUES (?)", (version,))
            logger.info(f"Applied migration {name} to {self.db_path}")
        conn.commit()

    def _connect(self) -> sqlite3.Connection:
        if self._connection is not None:
            return self._connection
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        if not self.in_memory:
            conn.execute("PRAGMA journal_mode=WAL")
        self._connection = conn
        return conn

    @contextlib.contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """One unit of work on the shared connection; rolled back if it raises."""
        conn = self._connect()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    def close(self) -> None:
        if self._connection is None:
            return
        self._connection.close()
        self._connection = None
