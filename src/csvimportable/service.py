"""Abstract DatabaseService interface: the transactional store behind an import."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from csvimportable.types import Params, ParamsList


class DatabaseService(ABC):
    """Database-agnostic interface for every write an import performs.

    An import run holds exactly one transaction() for its whole duration;
    row processors issue their statements through the same service and
    land on that transaction's connection.
    """

    #: Parameter marker understood by the backend's DB-API driver.
    placeholder: str = "?"

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        """Execute a SQL statement for each parameter set."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, CREATE INDEX, etc.) outside any transaction."""

    @contextmanager
    def savepoint(self, name: str = "import_row") -> Iterator[None]:
        """Nested scope inside the active transaction.

        An exception rolls back to the savepoint and re-raises, leaving the
        enclosing transaction usable for the statements that follow.
        """
        self.execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            self.execute(f"ROLLBACK TO SAVEPOINT {name}")
            self.execute(f"RELEASE SAVEPOINT {name}")
            raise
        self.execute(f"RELEASE SAVEPOINT {name}")

    def batch_insert(self, table: str, columns: list[str], rows: list[tuple]) -> None:
        """Insert multiple rows into a table."""
        if not rows:
            return
        self.execute_many(self._insert_sql(table, columns), rows)

    def upsert(
        self,
        table: str,
        columns: list[str],
        rows: list[tuple],
        conflict_columns: list[str],
    ) -> None:
        """Insert rows, updating on conflict with the specified columns."""
        if not rows:
            return
        update_cols = [c for c in columns if c not in conflict_columns]
        conflict_cols = ", ".join(conflict_columns)
        if update_cols:
            update_clause = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
            action = f"DO UPDATE SET {update_clause}"
        else:
            action = "DO NOTHING"
        sql = f"{self._insert_sql(table, columns)} ON CONFLICT ({conflict_cols}) {action}"
        self.execute_many(sql, rows)

    def _insert_sql(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        placeholders = ", ".join(self.placeholder for _ in columns)
        return f"INSERT INTO {table} ({cols}) VALUES ({placeholders})"
