from datetime import date

from finance_api.db import connect, init_db
from finance_api.repo import create_txn, delete_txn, list_txns
from finance_api.settings import Settings


def _settings(tmp_path):
    settings = Settings(data_dir=tmp_path, db_path=tmp_path / "t.sqlite")
    init_db(settings)
    return settings


def test_create_list_delete(tmp_path):
    settings = _settings(tmp_path)

    txn = create_txn(
        settings.db_path,
        user_id="user_1",
        title="Lunch",
        amount_cents=-1234,
        category="food",
    )
    assert txn.id > 0
    assert isinstance(date.fromisoformat(txn.created_at), date)

    rows = list_txns(settings.db_path, "user_1")
    assert [row.id for row in rows] == [txn.id]
    assert rows[0].amount_cents == -1234

    deleted = delete_txn(settings.db_path, txn.id)
    assert deleted == txn
    assert list_txns(settings.db_path, "user_1") == []


def test_delete_missing_id_leaves_table_unchanged(tmp_path):
    settings = _settings(tmp_path)
    create_txn(
        settings.db_path,
        user_id="user_1",
        title="Rent",
        amount_cents=-90000,
        category="housing",
    )

    assert delete_txn(settings.db_path, 9999) is None
    assert len(list_txns(settings.db_path, "user_1")) == 1


def test_list_orders_by_created_at_then_id_descending(tmp_path):
    settings = _settings(tmp_path)
    with connect(settings.db_path) as conn:
        conn.executemany(
            """
            INSERT INTO transactions(user_id, title, amount_cents, category, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                ("user_1", "old", 100, "misc", "2026-01-01"),
                ("user_1", "new", 200, "misc", "2026-03-01"),
                ("user_1", "mid-a", 300, "misc", "2026-02-01"),
                ("user_1", "mid-b", 400, "misc", "2026-02-01"),
                ("user_2", "other", 500, "misc", "2026-04-01"),
            ],
        )

    rows = list_txns(settings.db_path, "user_1")
    assert [row.title for row in rows] == ["new", "mid-b", "mid-a", "old"]
    assert all(row.user_id == "user_1" for row in rows)


def test_transactions_are_scoped_by_user(tmp_path):
    settings = _settings(tmp_path)

    mine = create_txn(
        settings.db_path,
        user_id="user_1",
        title="Salary",
        amount_cents=100000,
        category="salary",
    )
    create_txn(
        settings.db_path,
        user_id="user_2",
        title="Groceries",
        amount_cents=-2500,
        category="food",
    )

    assert [row.id for row in list_txns(settings.db_path, "user_1")] == [mine.id]
    assert list_txns(settings.db_path, "nobody") == []


def test_delete_returns_row_once(tmp_path):
    settings = _settings(tmp_path)
    txn = create_txn(
        settings.db_path,
        user_id="user_1",
        title="Gym",
        amount_cents=-3000,
        category="health",
    )

    assert delete_txn(settings.db_path, txn.id) == txn
    assert delete_txn(settings.db_path, txn.id) is None
    with connect(settings.db_path) as conn:
        count = conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0]
    assert count == 0
