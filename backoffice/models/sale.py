# backoffice/models/sale.py
from typing import Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db import Base


class Sale(Base):
    """Факт оплаты заказа; пишется в одной транзакции с переводом в paid"""
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True)
    pending_order_id: Mapped[int] = mapped_column(ForeignKey("pending_orders.id"), unique=True, index=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    affiliate_id: Mapped[Optional[int]] = mapped_column(ForeignKey("affiliates.id"), nullable=True, index=True)
    payment_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    order = relationship("PendingOrder")
    affiliate = relationship("Affiliate")
