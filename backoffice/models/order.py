# backoffice/models/order.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db import Base
from backoffice.utils.enums import OrderStatus, OrderType


@dataclass
class ItemMetadata:
    """Типизированная обёртка над JSON-метаданными позиции заказа.

    Именованные поля: те ключи, которые реально читает бэк-офис,
    остальное лежит в `extra` и пишется обратно как есть.
    """
    domain_id: Optional[int] = None
    category: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "ItemMetadata":
        raw = dict(raw or {})
        domain_id = raw.pop("domain_id", None)
        try:
            domain_id = int(domain_id) if domain_id not in (None, "") else None
        except (TypeError, ValueError):
            domain_id = None
        category = raw.pop("category", None)
        return cls(domain_id=domain_id, category=category, extra=raw)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        if self.domain_id is not None:
            data["domain_id"] = self.domain_id
        if self.category is not None:
            data["category"] = self.category
        return data


class PendingOrder(Base):
    __tablename__ = "pending_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # === СТАТУС ЗАКАЗА ===
    # допустимые значения: 'pending' | 'paid' | 'cancelled' (paid/cancelled: конечные)
    status: Mapped[str] = mapped_column(String(24), default=OrderStatus.PENDING.value, index=True)
    order_type: Mapped[str] = mapped_column(String(24), default=OrderType.TEMPLATE.value)

    # суммы; у старых заказов всё может быть пустым
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    discount_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    affiliate_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)

    # старые (до order_items) заказы ссылаются на один шаблон/инструмент и один домен
    template_id: Mapped[Optional[int]] = mapped_column(ForeignKey("templates.id"), nullable=True)
    tool_id: Mapped[Optional[int]] = mapped_column(ForeignKey("tools.id"), nullable=True)
    chosen_domain_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    payment_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    pending_order_id: Mapped[int] = mapped_column(ForeignKey("pending_orders.id"), index=True)

    # 'template' | 'tool'
    product_type: Mapped[str] = mapped_column(String(24))
    product_id: Mapped[int] = mapped_column(Integer)

    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    final_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    # атрибут `metadata` занят у declarative Base, поэтому своё имя
    item_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    order: Mapped["PendingOrder"] = relationship("PendingOrder", back_populates="items")

    @property
    def meta(self) -> ItemMetadata:
        return ItemMetadata.from_dict(self.item_metadata)

    def set_meta(self, meta: ItemMetadata) -> None:
        # JSON-колонка не отслеживает мутации: присваиваем новый dict
        self.item_metadata = meta.to_dict()
