from .db import connect
from .models import Transaction


def list_txns(db_path, user_id: str) -> list[Transaction]:
    with connect(db_path) as conn:
        cur = conn.execute(
            """
            SELECT * FROM transactions
            WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            """,
            (user_id,),
        )
        return [Transaction.from_row(row) for row in cur.fetchall()]


def create_txn(
    db_path,
    *,
    user_id: str,
    title: str,
    amount_cents: int,
    category: str,
) -> Transaction:
    with connect(db_path) as conn:
        rows = conn.execute(
            """
            INSERT INTO transactions(user_id, title, amount_cents, category)
            VALUES (?, ?, ?, ?)
            RETURNING *
            """,
            (user_id, title, amount_cents, category),
        ).fetchall()
        return Transaction.from_row(rows[0])


def delete_txn(db_path, txn_id: int) -> Transaction | None:
    with connect(db_path) as conn:
        # One statement: a row is returned to at most one concurrent delete.
        rows = conn.execute(
            "DELETE FROM transactions WHERE id = ? RETURNING *", (txn_id,)
        ).fetchall()
    if not rows:
        return None
    return Transaction.from_row(rows[0])


def get_summary(db_path, user_id: str) -> dict:
    with connect(db_path) as conn:
        totals = conn.execute(
            """
            SELECT
              COALESCE(SUM(amount_cents), 0) AS balance_cents,
              COALESCE(SUM(CASE WHEN amount_cents > 0 THEN amount_cents END), 0) AS income_cents,
              COALESCE(SUM(CASE WHEN amount_cents < 0 THEN amount_cents END), 0) AS expense_cents
            FROM transactions
            WHERE user_id = ?
            """,
            (user_id,),
        ).fetchone()

    return {
        "balance_cents": int(totals["balance_cents"]),
        "income_cents": int(totals["income_cents"]),
        "expense_cents": int(totals["expense_cents"]),
    }
