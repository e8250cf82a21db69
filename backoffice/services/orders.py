from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from backoffice.models.catalog import Template, Tool
from backoffice.models.order import OrderItem, PendingOrder
from backoffice.services import pricing
from backoffice.services.site_settings import SiteSettings
from backoffice.utils.money import ZERO, to_decimal


def get_order_by_id(db: Session, order_id: int) -> Optional[PendingOrder]:
    if not order_id or order_id <= 0:
        return None
    return db.get(PendingOrder, order_id)


def get_order_items(db: Session, order_id: int) -> List[OrderItem]:
    """Позиции заказа в порядке добавления."""
    return (
        db.query(OrderItem)
        .filter(OrderItem.pending_order_id == order_id)
        .order_by(OrderItem.id.asc())
        .all()
    )


def get_template_by_id(db: Session, template_id: Optional[int]) -> Optional[Template]:
    if not template_id:
        return None
    return db.get(Template, template_id)


def get_tool_by_id(db: Session, tool_id: Optional[int]) -> Optional[Tool]:
    if not tool_id:
        return None
    return db.get(Tool, tool_id)


def legacy_base_price(db: Session, order: PendingOrder) -> Decimal:
    """Цена из каталога для заказов, оформленных до order_items."""
    template = get_template_by_id(db, order.template_id)
    if template and to_decimal(template.price) > 0:
        return to_decimal(template.price)
    tool = get_tool_by_id(db, order.tool_id)
    if tool:
        return to_decimal(tool.price)
    return ZERO


def compute_order_amount(
    db: Session,
    order: PendingOrder,
    items: List[OrderItem],
    settings: SiteSettings,
) -> Decimal:
    base = legacy_base_price(db, order)

    return pricing.compute_final_amount(
        final_amount=order.final_amount,
        original_price=order.original_price,
        discount_amount=order.discount_amount,
        items=items,
        affiliate_code=order.affiliate_code,
        legacy_base_price=base,
        discount_rate=settings.customer_discount_rate,
    )
