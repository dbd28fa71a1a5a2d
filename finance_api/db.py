import sqlite3
from contextlib import contextmanager
from pathlib import Path

from .settings import Settings


@contextmanager
def connect(db_path: str | Path):
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        with conn:
            yield conn
    finally:
        conn.close()


def init_db(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    with connect(settings.db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              user_id TEXT NOT NULL,
              title TEXT NOT NULL,
              amount_cents INTEGER NOT NULL,
              category TEXT NOT NULL,
              created_at TEXT NOT NULL DEFAULT (date('now'))
            );
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transactions_user_created
            ON transactions(user_id, created_at DESC, id DESC)
            """
        )
