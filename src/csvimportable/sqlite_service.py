"""SQLite implementation of DatabaseService."""

import sqlite3
import threading
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Any, Iterator

from csvimportable.service import DatabaseService
from csvimportable.types import Params, ParamsList


class SQLiteDatabaseService(DatabaseService):
    """SQLite backend using stdlib sqlite3.

    Connections live in a Queue-backed pool. A transaction() pins one of them
    to the calling thread until it commits or rolls back; nesting a second
    transaction() on the same thread is an error, since an import must own
    its transaction outright.

    Connections run with ``isolation_level=None`` and transaction() issues
    its own BEGIN, so savepoints always nest inside the run's transaction.

    Note that ``:memory:`` gives every pooled connection its own database, so
    use a file path whenever more than one connection is involved.
    """

    placeholder = "?"

    def __init__(self, db_path: str, pool_size: int = 4):
        self._db_path = db_path
        self._pool_size = pool_size
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._local = threading.local()

    def connect(self) -> None:
        for _ in range(self._pool_size):
            conn = sqlite3.connect(self._db_path, check_same_thread=False, isolation_level=None)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._pool.put(conn)

    def close(self) -> None:
        while not self._pool.empty():
            try:
                self._pool.get_nowait().close()
            except Empty:
                break

    def _current(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            raise RuntimeError(
                "No active transaction. Wrap calls in a `with service.transaction():` block."
            )
        return conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            raise RuntimeError("A transaction is already active on this thread.")
        conn = self._pool.get(timeout=30)
        self._local.conn = conn
        try:
            conn.execute("BEGIN")
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            self._pool.put(conn)

    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        cursor = self._current().execute(sql, params or ())
        if cursor.description is None:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        self._current().executemany(sql, params_list)

    def execute_ddl(self, sql: str) -> None:
        conn = self._pool.get(timeout=30)
        try:
            conn.executescript(sql)
            conn.commit()
        finally:
            self._pool.put(conn)
