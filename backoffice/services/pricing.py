"""Расчёт суммы к оплате.

Чистые функции: никаких запросов в базу, всё считается в Decimal,
округление до копеек: только в quantize_money при записи.
"""
from decimal import Decimal
from typing import Any, Iterable, Optional

from backoffice.utils.money import ZERO, quantize_money, to_decimal

ONE = Decimal("1")


def line_final_amount(unit_price: Any, quantity: Any, discount_amount: Any = None) -> Decimal:
    """Сумма строки: цена × кол-во − скидка, не меньше нуля."""
    qty = max(int(quantity or 0), 0)
    total = to_decimal(unit_price) * qty - to_decimal(discount_amount)
    return max(total, ZERO)


def item_amount(item: Any) -> Decimal:
    """final_amount позиции; если не записан: пересчитываем из цены."""
    final_amount = getattr(item, "final_amount", None)
    if final_amount is not None:
        return max(to_decimal(final_amount), ZERO)
    return line_final_amount(
        getattr(item, "unit_price", None),
        getattr(item, "quantity", 1),
        getattr(item, "discount_amount", None),
    )


def apply_discount(base_price: Any, discount_rate: Any) -> Decimal:
    rate = to_decimal(discount_rate)
    if rate <= 0:
        return to_decimal(base_price)
    if rate >= ONE:
        return ZERO
    return to_decimal(base_price) * (ONE - rate)


def compute_final_amount(
    final_amount: Any = None,
    original_price: Any = None,
    discount_amount: Any = None,
    items: Optional[Iterable[Any]] = None,
    affiliate_code: Optional[str] = None,
    legacy_base_price: Any = None,
    discount_rate: Any = ZERO,
) -> Decimal:
    """
    Сумма к оплате, по приоритету:
      1) final_amount заказа, если > 0
      2) original_price заказа как есть, если > 0
      3) сумма final_amount позиций
      4) цена шаблона/инструмента для старых заказов
         (со скидкой покупателю, если есть партнёрский код)
    discount_amount заказа в сумму не входит: он только для отчётов.
    0 означает «посчитать не из чего»: вызывающий считает это ошибкой.
    """
    final = to_decimal(final_amount)
    if final > 0:
        return final

    original = to_decimal(original_price)
    if original > 0:
        return original

    items = list(items or [])
    if items:
        total = sum((item_amount(it) for it in items), ZERO)
        if total > 0:
            return total

    base = to_decimal(legacy_base_price)
    if base > 0:
        if affiliate_code:
            return max(apply_discount(base, discount_rate), ZERO)
        return base

    return ZERO


def commission_for(amount: Any, rate: Any) -> Decimal:
    """Комиссия партнёра с суммы оплаты, уже округлённая до копеек."""
    rate = to_decimal(rate)
    if rate <= 0:
        return quantize_money(ZERO)
    return quantize_money(to_decimal(amount) * rate)
