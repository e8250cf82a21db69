# backoffice/models/affiliate.py
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db import Base
from backoffice.utils.enums import AffiliateStatus, WithdrawalStatus


class Affiliate(Base):
    __tablename__ = "affiliates"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    code: Mapped[str] = mapped_column(String(20), unique=True)  # всегда UPPER, [A-Z0-9]{4,20}

    # 'active' | 'inactive' | 'suspended'
    status: Mapped[str] = mapped_column(String(24), default=AffiliateStatus.ACTIVE.value, index=True)
    # None: берём ставку из настроек сайта
    custom_commission_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 4), nullable=True)

    # earned = pending + paid, всегда
    commission_earned: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    commission_pending: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    commission_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    total_clicks: Mapped[int] = mapped_column(Integer, default=0)
    total_sales: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user = relationship("User")
    withdrawals: Mapped[List["WithdrawalRequest"]] = relationship(
        "WithdrawalRequest", back_populates="affiliate"
    )


@dataclass
class BankDetails:
    bank_name: str = ""
    account_number: str = ""
    account_name: str = ""

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "BankDetails":
        raw = raw or {}
        return cls(
            bank_name=str(raw.get("bank_name") or ""),
            account_number=str(raw.get("account_number") or ""),
            account_name=str(raw.get("account_name") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "account_name": self.account_name,
        }


class WithdrawalRequest(Base):
    __tablename__ = "withdrawal_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    affiliate_id: Mapped[int] = mapped_column(ForeignKey("affiliates.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    # 'pending' | 'approved' | 'paid' | 'rejected': переходит только из pending
    status: Mapped[str] = mapped_column(String(24), default=WithdrawalStatus.PENDING.value, index=True)
    bank_details_json: Mapped[Optional[Dict[str, Any]]] = mapped_column("bank_details", JSON, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    processed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    affiliate: Mapped["Affiliate"] = relationship("Affiliate", back_populates="withdrawals")

    @property
    def bank_details(self) -> BankDetails:
        return BankDetails.from_dict(self.bank_details_json)
