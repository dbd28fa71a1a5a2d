from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .models import NewTransaction

REQUIRED_FIELDS_MESSAGE = "All fields are required."

# Same range as a DECIMAL(10, 2) column.
MAX_ABS_CENTS = 10**12


def _is_missing(value) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_amount(value) -> int:
    """Parse a signed amount into integer cents, rounding half up to two decimals.

    Zero is a valid amount; only missing values are rejected as absent.
    """
    if _is_missing(value):
        raise ValueError("amount required")
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError("amount invalid")
    try:
        d = Decimal(str(value).strip())
        if not d.is_finite():
            raise ValueError("amount invalid")
        cents = (d * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError("amount invalid") from e
    if abs(cents) >= MAX_ABS_CENTS:
        raise ValueError("amount invalid")
    return int(cents)


def _as_text(value) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError("text fields must be strings")
    return str(value).strip()


def validate_new_transaction(*, title, amount, category, user_id) -> NewTransaction:
    if any(_is_missing(v) for v in (title, amount, category, user_id)):
        raise ValueError(REQUIRED_FIELDS_MESSAGE)
    return NewTransaction(
        user_id=user_id if isinstance(user_id, str) else _as_text(user_id),
        title=_as_text(title),
        amount_cents=parse_amount(amount),
        category=_as_text(category),
    )
