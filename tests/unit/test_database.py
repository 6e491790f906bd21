"""Tests for the store connection manager."""

import pytest

from yachtcrm.database import DatabaseManager


@pytest.mark.unit
def test_store_file_and_directory_are_created(tmp_path, logger):
    path = tmp_path / "data" / "crm.db"

    manager = DatabaseManager(supabase_url="", supabase_key="", sqlite_path=path, logger=logger)
    manager.sqlite.execute("CREATE TABLE t (x INTEGER)")
    manager.close()
    manager.close()

    assert path.exists()
    assert manager.has_supabase is False
    with pytest.raises(RuntimeError):
        manager.supabase


@pytest.mark.unit
def test_nested_transaction_commits_once(db):
    db.sqlite.execute("CREATE TABLE t (x INTEGER)")

    with db.transaction():
        db.sqlite.execute("INSERT INTO t VALUES (1)")
        with db.transaction():
            db.sqlite.execute("INSERT INTO t VALUES (2)")
        assert db.in_transaction is True

    assert db.in_transaction is False
    assert db.sqlite.execute("SELECT COUNT(*) FROM t").fetchone()[0] == 2
