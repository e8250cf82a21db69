from datetime import date, datetime, time
from io import BytesIO
from typing import List, Optional, Tuple

from openpyxl import Workbook
from sqlalchemy.orm import Session

from backoffice.models.order import PendingOrder
from backoffice.models.sale import Sale
from backoffice.utils.money import to_decimal

HEADERS = [
    "Order ID", "Date", "Customer Name", "Customer Email", "Customer Phone",
    "Order Type", "Status", "Original Amount", "Discount", "Final Amount",
    "Affiliate Code", "Commission Amount", "Notes",
]


def orders_for_export(
    db: Session,
    start_date: date,
    end_date: date,
) -> List[Tuple[PendingOrder, Optional[Sale]]]:
    """Заказы за период (включительно) + продажа, если есть; комиссия берётся из sales."""
    start = datetime.combine(start_date, time.min)
    end = datetime.combine(end_date, time.max)
    return (
        db.query(PendingOrder, Sale)
        .outerjoin(Sale, Sale.pending_order_id == PendingOrder.id)
        .filter(PendingOrder.created_at >= start, PendingOrder.created_at <= end)
        .order_by(PendingOrder.created_at.desc(), PendingOrder.id.desc())
        .all()
    )


def build_orders_workbook(rows: List[Tuple[PendingOrder, Optional[Sale]]]) -> BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = "Orders"

    ws.append(HEADERS)
    for order, sale in rows:
        original = order.original_price if order.original_price is not None else order.final_amount
        ws.append([
            order.id,
            order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else "",
            order.customer_name or "",
            order.customer_email or "",
            order.customer_phone or "",
            order.order_type or "template",
            order.status,
            float(to_decimal(original)),
            float(to_decimal(order.discount_amount)),
            float(to_decimal(order.final_amount)),
            order.affiliate_code or "",
            float(to_decimal(sale.commission_amount)) if sale else 0.0,
            order.payment_notes or "",
        ])

    # ширина колонок
    ws.column_dimensions["B"].width = 17  # Дата
    ws.column_dimensions["C"].width = 24  # Имя
    ws.column_dimensions["D"].width = 28  # Email

    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio
