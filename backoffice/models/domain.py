# backoffice/models/domain.py
from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db import Base
from backoffice.utils.enums import DomainStatus


class Domain(Base):
    __tablename__ = "domains"

    id: Mapped[int] = mapped_column(primary_key=True)
    template_id: Mapped[int] = mapped_column(ForeignKey("templates.id"), index=True)
    domain_name: Mapped[str] = mapped_column(String(255), unique=True)

    # допустимые значения: 'available' | 'in_use' | 'suspended'
    # in_use ⇒ assigned_order_id обязательно заполнен
    status: Mapped[str] = mapped_column(String(24), default=DomainStatus.AVAILABLE.value, index=True)
    assigned_order_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("pending_orders.id"), nullable=True, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    template = relationship("Template", back_populates="domains")
