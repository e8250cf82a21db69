from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from backoffice import config

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(val: Any, default: Decimal = ZERO) -> Decimal:
    """Безопасный перевод в Decimal (None, float, строка с запятой)."""
    if val is None:
        return default
    if isinstance(val, Decimal):
        return val
    if isinstance(val, float):
        # через str, чтобы не тащить двоичный хвост
        return Decimal(str(val))
    if isinstance(val, str):
        val = val.replace(",", ".").strip()
        if not val:
            return default
    try:
        return Decimal(val)
    except (InvalidOperation, ValueError, TypeError):
        return default


def quantize_money(amount: Decimal) -> Decimal:
    """Округление до копеек: только при записи в базу и выводе."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Any) -> str:
    return f"{config.CURRENCY_SYMBOL}{quantize_money(to_decimal(amount)):,.2f}"
