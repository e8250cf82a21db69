"""Партнёры: заведение, статус, ставка комиссии, выплаты.

Баланс партнёра всегда сходится: earned == pending + paid.
Начисление (pending, earned) делает finalizer, выплата переносит
сумму из pending в paid одним UPDATE с условием pending >= amount.
"""
import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from backoffice.models.affiliate import Affiliate, BankDetails, WithdrawalRequest
from backoffice.models.user import User
from backoffice.services.errors import (
    AffiliateNotFound,
    InvalidAffiliateCode,
    InvalidAmount,
    InvalidInput,
    InvalidState,
    WithdrawalNotFound,
)
from backoffice.services.results import ActionResult
from backoffice.services.site_settings import SiteSettings
from backoffice.services.tx import atomic
from backoffice.utils.enums import AffiliateStatus, UserRole, WithdrawalStatus
from backoffice.utils.money import ZERO, format_currency, quantize_money, to_decimal
from backoffice.utils.security import hash_password
from backoffice.utils.text import sanitize_input, validate_email

logger = logging.getLogger(__name__)

CODE_RE = re.compile(r"^[A-Z0-9]{4,20}$")


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def get_affiliate(db: Session, affiliate_id: int) -> Affiliate:
    affiliate = db.get(Affiliate, affiliate_id) if affiliate_id and affiliate_id > 0 else None
    if not affiliate:
        raise AffiliateNotFound()
    return affiliate


def get_active_affiliate(db: Session, code: Optional[str]) -> Optional[Affiliate]:
    code = normalize_code(code)
    if not code:
        return None
    return (
        db.query(Affiliate)
        .filter(Affiliate.code == code, Affiliate.status == AffiliateStatus.ACTIVE.value)
        .first()
    )


def effective_rate(affiliate: Affiliate, settings: SiteSettings) -> Decimal:
    if affiliate.custom_commission_rate is not None:
        return to_decimal(affiliate.custom_commission_rate)
    return settings.affiliate_commission_rate


def commission_balance_ok(affiliate: Affiliate) -> bool:
    earned = quantize_money(to_decimal(affiliate.commission_earned))
    pending = quantize_money(to_decimal(affiliate.commission_pending))
    paid = quantize_money(to_decimal(affiliate.commission_paid))
    return earned == pending + paid


def create_affiliate(
    db: Session,
    email: str,
    password: str,
    code: str,
    admin_id: Optional[int] = None,
) -> Affiliate:
    email = (email or "").strip().lower()
    code = normalize_code(code)

    if not validate_email(email):
        raise InvalidInput("A valid email address is required.")
    if not password:
        raise InvalidInput("Password is required.")
    if not CODE_RE.match(code):
        raise InvalidAffiliateCode()
    if db.query(User.id).filter(User.email == email).first():
        raise InvalidInput("Email already exists.")
    if db.query(Affiliate.id).filter(Affiliate.code == code).first():
        raise InvalidAffiliateCode("Affiliate code already exists.")

    name = sanitize_input(email.split("@", 1)[0])
    with atomic(db, f"create_affiliate {code}"):
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.AFFILIATE.value,
            status="active",
        )
        db.add(user)
        db.flush()

        affiliate = Affiliate(
            user_id=user.id,
            code=code,
            status=AffiliateStatus.ACTIVE.value,
            commission_earned=ZERO,
            commission_pending=ZERO,
            commission_paid=ZERO,
            total_clicks=0,
            total_sales=0,
        )
        db.add(affiliate)

    db.refresh(affiliate)
    logger.info("Affiliate %s created by admin #%s", code, admin_id)
    return affiliate


def update_affiliate_status(db: Session, affiliate_id: int, status: str) -> ActionResult:
    allowed = {s.value for s in AffiliateStatus}
    if status not in allowed:
        choices = ", ".join(sorted(allowed))
        raise InvalidInput(f"Status must be one of: {choices}.")
    affiliate = get_affiliate(db, affiliate_id)
    with atomic(db, f"update_affiliate_status #{affiliate_id}"):
        affiliate.status = status
    return ActionResult(True, f"Affiliate {affiliate.code} is now {status}.")


def update_commission_rate(db: Session, affiliate_id: int, rate: Any) -> ActionResult:
    """rate=None: сброс на ставку из настроек."""
    if rate is not None and rate != "":
        rate = to_decimal(rate, default=None)
        if rate is None or not rate.is_finite() or rate < 0 or rate > 1:
            raise InvalidInput("Commission rate must be between 0 and 1.")
    else:
        rate = None

    affiliate = get_affiliate(db, affiliate_id)
    with atomic(db, f"update_commission_rate #{affiliate_id}"):
        affiliate.custom_commission_rate = rate

    if rate is None:
        return ActionResult(True, f"Commission rate for {affiliate.code} reset to default.")
    return ActionResult(
        True,
        f"Commission rate for {affiliate.code} set to {(rate * 100).normalize()}%.",
    )


def pending_withdrawals_total(db: Session, affiliate_id: int) -> Decimal:
    """Сумма ещё не обработанных заявок партнёра."""
    q = db.query(func.coalesce(func.sum(WithdrawalRequest.amount), 0)).filter(
        WithdrawalRequest.affiliate_id == affiliate_id,
        WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
    )
    return to_decimal(q.scalar())


def request_withdrawal(
    db: Session,
    affiliate_id: int,
    amount: Any,
    bank_details: Optional[Dict[str, Any]] = None,
) -> WithdrawalRequest:
    amount = to_decimal(amount, default=None)
    if amount is None or not amount.is_finite() or amount <= 0:
        raise InvalidAmount("Withdrawal amount must be greater than zero.")
    amount = quantize_money(amount)

    affiliate = get_affiliate(db, affiliate_id)
    available = to_decimal(affiliate.commission_pending) - pending_withdrawals_total(db, affiliate.id)
    if amount > available:
        raise InvalidAmount(
            f"Withdrawal amount exceeds available balance ({format_currency(available)})."
        )

    details = BankDetails.from_dict(bank_details)
    with atomic(db, f"request_withdrawal affiliate #{affiliate_id}"):
        req = WithdrawalRequest(
            affiliate_id=affiliate.id,
            amount=amount,
            status=WithdrawalStatus.PENDING.value,
            bank_details_json=details.to_dict(),
        )
        db.add(req)

    db.refresh(req)
    logger.info("Withdrawal #%s requested by affiliate %s: %s", req.id, affiliate.code, amount)
    return req


def process_withdrawal(
    db: Session,
    request_id: int,
    status: str,
    notes: str = "",
    admin_id: Optional[int] = None,
    mailer=None,
) -> ActionResult:
    """
    pending → approved | paid | rejected.
    Деньги двигает только paid: pending -= amount, paid += amount.
    """
    final_statuses = {
        WithdrawalStatus.APPROVED.value,
        WithdrawalStatus.PAID.value,
        WithdrawalStatus.REJECTED.value,
    }
    if status not in final_statuses:
        raise InvalidInput("Status must be one of: approved, paid, rejected.")

    req = db.get(WithdrawalRequest, request_id) if request_id and request_id > 0 else None
    if not req:
        raise WithdrawalNotFound()
    if req.status != WithdrawalStatus.PENDING.value:
        raise InvalidState(f"Withdrawal request #{request_id} is already {req.status}.")

    amount = quantize_money(to_decimal(req.amount))
    affiliate_id = req.affiliate_id

    with atomic(db, f"process_withdrawal #{request_id}"):
        result = db.execute(
            update(WithdrawalRequest)
            .where(
                WithdrawalRequest.id == request_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
            )
            .values(
                status=status,
                admin_notes=(notes or None),
                processed_at=datetime.utcnow(),
                processed_by=admin_id,
            )
        )
        if result.rowcount != 1:
            raise InvalidState(f"Withdrawal request #{request_id} is no longer pending.")

        if status == WithdrawalStatus.PAID.value:
            moved = db.execute(
                update(Affiliate)
                .where(Affiliate.id == affiliate_id, Affiliate.commission_pending >= amount)
                .values(
                    commission_pending=Affiliate.commission_pending - amount,
                    commission_paid=Affiliate.commission_paid + amount,
                )
                .execution_options(synchronize_session=False)
            )
            if moved.rowcount != 1:
                raise InvalidAmount("Insufficient pending commission to pay this withdrawal.")

    logger.info("Withdrawal #%s %s by admin #%s (%s)", request_id, status, admin_id, amount)

    if mailer is not None:
        mailer.send_withdrawal_processed(req, status)

    return ActionResult(True, f"Withdrawal request #{request_id} marked as {status}.")


def list_withdrawals(db: Session, status: Optional[str] = None) -> List[WithdrawalRequest]:
    q = db.query(WithdrawalRequest)
    if status:
        q = q.filter(WithdrawalRequest.status == status)
    return q.order_by(WithdrawalRequest.requested_at.desc(), WithdrawalRequest.id.desc()).all()
