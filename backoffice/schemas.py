"""Тела запросов админки."""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DomainAssignmentIn(BaseModel):
    """Домен для позиции; order_item_id=None: старый заказ без order_items."""
    order_item_id: Optional[int] = Field(None, description="Order item ID")
    domain_id: int = Field(..., description="Domain ID")


class FinalizeIn(BaseModel):
    amount_paid: Optional[Decimal] = Field(None, description="Amount received; empty = computed order amount")
    notes: str = Field("", max_length=2000, description="Payment notes")
    domain_assignments: List[DomainAssignmentIn] = Field(default_factory=list)

    def assignment_pairs(self):
        return [(a.order_item_id, a.domain_id) for a in self.domain_assignments]


class CancelIn(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderDomainsIn(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)
    domain_assignments: List[DomainAssignmentIn] = Field(default_factory=list)


class BulkIdsIn(BaseModel):
    ids: List[int] = Field(default_factory=list, description="Order IDs")


class AssignDomainIn(BaseModel):
    order_id: int
    order_item_id: Optional[int] = None


class DomainIn(BaseModel):
    template_id: int
    domain_name: str = Field(..., max_length=255)
    notes: Optional[str] = None


class BulkDomainsIn(BaseModel):
    template_id: int
    domain_list: str = Field(..., description="One domain per line")


class DomainEditIn(BaseModel):
    template_id: int
    domain_name: str = Field(..., max_length=255)
    status: Optional[str] = None
    notes: Optional[str] = None


class AffiliateIn(BaseModel):
    email: str
    password: str
    code: str


class StatusIn(BaseModel):
    status: str


class CommissionRateIn(BaseModel):
    rate: Optional[Decimal] = Field(None, description="0..1, empty resets to default")


class WithdrawalIn(BaseModel):
    amount: Decimal
    bank_details: Dict[str, str] = Field(default_factory=dict)


class WithdrawalProcessIn(BaseModel):
    status: str = Field(..., description="approved | paid | rejected")
    notes: str = ""


class LoginIn(BaseModel):
    email: str
    password: str
