"""Tests for DatabaseService (SQLite backend)."""

import sqlite3
import threading

import pytest

from csvimportable import create_service
from csvimportable.sqlite_service import SQLiteDatabaseService


class TestCreateService:
    def test_sqlite_url(self, tmp_path):
        service = create_service(f"sqlite:///{tmp_path / 'x.db'}")
        assert isinstance(service, SQLiteDatabaseService)
        assert service.placeholder == "?"

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported database URL scheme"):
            create_service("mysql://localhost/db")


class TestDatabaseService:
    def test_execute_ddl_and_insert(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        with db_service.transaction():
            db_service.execute("INSERT INTO t (id, name) VALUES (?, ?)", (1, "alice"))
            rows = db_service.execute("SELECT * FROM t")
        assert rows == [{"id": 1, "name": "alice"}]

    def test_batch_insert(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with db_service.transaction():
            db_service.batch_insert("t", ["id", "val"], [(1, "x"), (2, "y")])
            rows = db_service.execute("SELECT * FROM t ORDER BY id")
        assert len(rows) == 2

    def test_upsert_insert_and_update(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with db_service.transaction():
            db_service.upsert("t", ["id", "val"], [(1, "old")], ["id"])
        with db_service.transaction():
            db_service.upsert("t", ["id", "val"], [(1, "new"), (2, "fresh")], ["id"])
            rows = db_service.execute("SELECT * FROM t ORDER BY id")
        assert rows == [{"id": 1, "val": "new"}, {"id": 2, "val": "fresh"}]

    def test_upsert_without_update_columns_keeps_existing(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            db_service.upsert("t", ["id"], [(1,), (1,)], ["id"])
            rows = db_service.execute("SELECT * FROM t")
        assert rows == [{"id": 1}]

    def test_transaction_rollback_on_error(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with pytest.raises(ValueError):
            with db_service.transaction():
                db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (1, "x"))
                raise ValueError("simulated failure")

        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM t")
        assert rows == []

    def test_requires_transaction(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with pytest.raises(RuntimeError, match="No active transaction"):
            db_service.execute("SELECT 1")

    def test_nested_transaction_rejected(self, db_service):
        with db_service.transaction():
            with pytest.raises(RuntimeError, match="already active"):
                with db_service.transaction():
                    pass

    def test_concurrent_transactions(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val INTEGER)")
        errors = []

        def worker(n):
            try:
                with db_service.transaction():
                    db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (n, n * 10))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM t ORDER BY id")
        assert len(rows) == 4


class TestSavepoint:
    def test_release_keeps_writes(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            with db_service.savepoint():
                db_service.execute("INSERT INTO t (id) VALUES (?)", (1,))
        with db_service.transaction():
            assert db_service.execute("SELECT id FROM t") == [{"id": 1}]

    def test_error_undoes_only_the_savepoint(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            db_service.execute("INSERT INTO t (id) VALUES (?)", (1,))
            with pytest.raises(ValueError):
                with db_service.savepoint():
                    db_service.execute("INSERT INTO t (id) VALUES (?)", (2,))
                    raise ValueError("bad row")
            db_service.execute("INSERT INTO t (id) VALUES (?)", (3,))
        with db_service.transaction():
            rows = db_service.execute("SELECT id FROM t ORDER BY id")
        assert rows == [{"id": 1}, {"id": 3}]

    def test_failed_statement_leaves_transaction_usable(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            db_service.execute("INSERT INTO t (id) VALUES (?)", (1,))
            with pytest.raises(sqlite3.IntegrityError):
                with db_service.savepoint():
                    db_service.execute("INSERT INTO t (id) VALUES (?)", (1,))
            db_service.execute("INSERT INTO t (id) VALUES (?)", (2,))
        with db_service.transaction():
            assert len(db_service.execute("SELECT id FROM t")) == 2

    def test_released_savepoint_rolls_back_with_transaction(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with pytest.raises(RuntimeError):
            with db_service.transaction():
                with db_service.savepoint():
                    db_service.execute("INSERT INTO t (id) VALUES (?)", (1,))
                raise RuntimeError("abort")
        with db_service.transaction():
            assert db_service.execute("SELECT id FROM t") == []
