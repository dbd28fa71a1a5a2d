from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


class TransactionCreate(BaseModel):
    # Presence and shape are checked by logic.validate_new_transaction.
    title: Any = None
    amount: Any = None
    category: Any = None
    user_id: Any = None


def cents_to_amount(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class NewTransaction:
    user_id: str
    title: str
    amount_cents: int
    category: str


@dataclass(frozen=True)
class Transaction:
    id: int
    user_id: str
    title: str
    amount_cents: int
    category: str
    created_at: str

    @classmethod
    def from_row(cls, row) -> "Transaction":
        return cls(
            id=int(row["id"]),
            user_id=row["user_id"],
            title=row["title"],
            amount_cents=int(row["amount_cents"]),
            category=row["category"],
            created_at=row["created_at"],
        )

    @property
    def amount(self) -> Decimal:
        return cents_to_amount(self.amount_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "amount": self.amount,
            "category": self.category,
            "created_at": self.created_at,
        }
