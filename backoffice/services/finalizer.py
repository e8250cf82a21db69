"""Закрытие заказа: pending → paid / pending → cancelled.

paid и cancelled: конечные статусы. Перевод делается условным UPDATE
(WHERE status = 'pending'), поэтому повторное подтверждение или гонка
двух админов даёт OrderNotPending, а не двойную продажу.
Письма уходят только после commit.
"""
import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from backoffice.models.affiliate import Affiliate
from backoffice.models.order import PendingOrder
from backoffice.models.order_status_log import OrderStatusLog
from backoffice.models.sale import Sale
from backoffice.services import domains as domain_service
from backoffice.services.affiliates import effective_rate, get_active_affiliate
from backoffice.services.errors import InvalidAmount, InvalidInput, OrderNotFound, OrderNotPending
from backoffice.services.orders import compute_order_amount, get_order_by_id, get_order_items
from backoffice.services.pricing import commission_for
from backoffice.services.results import ActionResult, FinalizeResult
from backoffice.services.site_settings import SiteSettings
from backoffice.services.tx import atomic
from backoffice.utils.enums import OrderStatus
from backoffice.utils.money import ZERO, format_currency, quantize_money, to_decimal

logger = logging.getLogger(__name__)


def _load_pending(db: Session, order_id: int) -> PendingOrder:
    order = get_order_by_id(db, order_id)
    if not order:
        raise OrderNotFound(f"Order #{order_id} not found.")
    if order.status != OrderStatus.PENDING.value:
        raise OrderNotPending(f"Order #{order_id} is already {order.status}.")
    return order


def _transition(db: Session, order_id: int, new_status: str, **values: Any) -> None:
    result = db.execute(
        update(PendingOrder)
        .where(PendingOrder.id == order_id, PendingOrder.status == OrderStatus.PENDING.value)
        .values(status=new_status, updated_at=datetime.utcnow(), **values)
    )
    if result.rowcount != 1:
        # кто-то успел раньше нас
        raise OrderNotPending(f"Order #{order_id} is no longer pending.")


def _normalize_assignments(domain_assignments: Optional[Iterable[Tuple[Any, Any]]]):
    """(order_item_id | None, domain_id): None/0 в item означает старый путь chosen_domain_id."""
    cleaned = []
    for order_item_id, domain_id in domain_assignments or []:
        try:
            domain_id = int(domain_id)
            order_item_id = int(order_item_id) if order_item_id else None
        except (TypeError, ValueError):
            raise InvalidInput("Invalid domain assignment.")
        if domain_id <= 0:
            continue
        cleaned.append((order_item_id, domain_id))
    return cleaned


def mark_order_paid(
    db: Session,
    order_id: int,
    admin_id: Optional[int],
    settings: SiteSettings,
    amount_paid: Any = None,
    notes: str = "",
    domain_assignments: Optional[Iterable[Tuple[Any, Any]]] = None,
    mailer=None,
) -> FinalizeResult:
    """
    Подтверждение оплаты одной транзакцией:
    - домены позиций-шаблонов (все или ни одного),
    - pending → paid + заметки об оплате,
    - запись в sales с комиссией,
    - начисление комиссии партнёру (earned и pending).
    amount_paid=None: берём расчётную сумму заказа.
    """
    order = _load_pending(db, order_id)
    items = get_order_items(db, order_id)

    if amount_paid is None or amount_paid == "":
        amount = compute_order_amount(db, order, items, settings)
    else:
        amount = to_decimal(amount_paid, default=None)
        if amount is None or not amount.is_finite():
            raise InvalidAmount("Invalid payment amount.")
    amount = quantize_money(amount)
    if amount <= 0:
        raise InvalidAmount()

    assignments = _normalize_assignments(domain_assignments)

    affiliate = get_active_affiliate(db, order.affiliate_code)
    if order.affiliate_code and not affiliate:
        logger.warning("Order #%s has affiliate code %s but no active affiliate", order_id, order.affiliate_code)

    commission = quantize_money(ZERO)
    if affiliate:
        commission = commission_for(amount, effective_rate(affiliate, settings))

    new_final = order.final_amount if to_decimal(order.final_amount) > 0 else amount
    affiliate_id = affiliate.id if affiliate else None

    with atomic(db, f"mark_order_paid #{order_id}"):
        for order_item_id, domain_id in assignments:
            if order_item_id:
                domain_service.assign_item_domain(db, order_item_id, domain_id, order_id)
            else:
                domain_service.assign_domain_to_customer(db, domain_id, order)

        _transition(
            db, order_id, OrderStatus.PAID.value,
            payment_notes=(notes or None),
            paid_at=datetime.utcnow(),
            final_amount=quantize_money(new_final),
        )

        db.add(Sale(
            pending_order_id=order_id,
            admin_id=admin_id,
            original_price=order.original_price,
            discount_amount=quantize_money(to_decimal(order.discount_amount)),
            amount_paid=amount,
            commission_amount=commission,
            affiliate_id=affiliate_id,
            payment_notes=(notes or None),
        ))

        if affiliate_id:
            db.execute(
                update(Affiliate)
                .where(Affiliate.id == affiliate_id)
                .values(
                    total_sales=Affiliate.total_sales + 1,
                    commission_earned=Affiliate.commission_earned + commission,
                    commission_pending=Affiliate.commission_pending + commission,
                )
                .execution_options(synchronize_session=False)
            )

        db.add(OrderStatusLog(
            order_id=order_id,
            old_status=OrderStatus.PENDING.value,
            new_status=OrderStatus.PAID.value,
            admin_id=admin_id,
            note=f"Paid {format_currency(amount)}",
        ))

    logger.info("Order #%s marked paid: amount=%s commission=%s affiliate=%s",
                order_id, amount, commission, affiliate_id)

    if mailer is not None:
        mailer.send_order_confirmed(order, amount)

    message = f"Order confirmed successfully! Amount: {format_currency(amount)}"
    if notes:
        message += " Payment notes have been saved."
    return FinalizeResult(
        success=True,
        message=message,
        order_id=order_id,
        amount_paid=amount,
        commission_amount=commission,
        affiliate_id=affiliate_id,
    )


def cancel_order(
    db: Session,
    order_id: int,
    reason: str,
    admin_id: Optional[int],
    mailer=None,
) -> ActionResult:
    order = get_order_by_id(db, order_id)
    if not order:
        raise OrderNotFound(f"Order #{order_id} not found.")
    if order.status != OrderStatus.PENDING.value:
        raise OrderNotPending(
            f"Only pending orders can be cancelled. Order #{order_id} is {order.status}."
        )

    reason = (reason or "").strip() or "Order cancelled by administrator"
    with atomic(db, f"cancel_order #{order_id}"):
        _transition(
            db, order_id, OrderStatus.CANCELLED.value,
            cancellation_reason=reason[:500],
            cancelled_at=datetime.utcnow(),
        )
        db.add(OrderStatusLog(
            order_id=order_id,
            old_status=OrderStatus.PENDING.value,
            new_status=OrderStatus.CANCELLED.value,
            admin_id=admin_id,
            note=reason[:500],
        ))

    logger.info("Order #%s cancelled by admin #%s: %s", order_id, admin_id, reason)

    if mailer is not None:
        mailer.send_order_cancelled(order, reason)

    return ActionResult(True, f"Order #{order_id} has been cancelled.")

