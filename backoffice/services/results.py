from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional


@dataclass
class ActionResult:
    success: bool
    message: str

    def as_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


@dataclass
class FinalizeResult(ActionResult):
    order_id: int = 0
    amount_paid: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    affiliate_id: Optional[int] = None

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["order_id"] = self.order_id
        data["amount_paid"] = str(self.amount_paid)
        return data


@dataclass
class BulkResult:
    success_count: int = 0
    fail_count: int = 0
    # id, которые не прошли проверку (<= 0 или заказа нет): в счёт не идут
    skipped_ids: List[int] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"success_count": self.success_count, "fail_count": self.fail_count}
