from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.deps import get_admin_id
from backoffice.notify.mailer import get_mailer
from backoffice.schemas import AffiliateIn, CommissionRateIn, StatusIn, WithdrawalIn, WithdrawalProcessIn
from backoffice.services import affiliates
from backoffice.services.activity import log_activity

router = APIRouter(prefix="/admin", tags=["admin-affiliates"])


def _affiliate_dict(a):
    return {
        "id": a.id,
        "code": a.code,
        "status": a.status,
        "custom_commission_rate": str(a.custom_commission_rate) if a.custom_commission_rate is not None else None,
        "commission_earned": str(a.commission_earned),
        "commission_pending": str(a.commission_pending),
        "commission_paid": str(a.commission_paid),
        "total_sales": a.total_sales,
    }


@router.post("/affiliates")
def create_affiliate(payload: AffiliateIn, request: Request, db: Session = Depends(get_db), admin_id=Depends(get_admin_id)):
    affiliate = affiliates.create_affiliate(db, payload.email, payload.password, payload.code, admin_id)
    log_activity(db, "affiliate_created", f"Created affiliate {affiliate.code}", user_id=admin_id, request=request)
    return {"success": True, "message": "Affiliate created successfully!", "affiliate": _affiliate_dict(affiliate)}


@router.get("/affiliates/{affiliate_id}")
def affiliate_detail(affiliate_id: int, db: Session = Depends(get_db)):
    affiliate = affiliates.get_affiliate(db, affiliate_id)
    data = _affiliate_dict(affiliate)
    data["balance_ok"] = affiliates.commission_balance_ok(affiliate)
    return data


@router.post("/affiliates/{affiliate_id}/status")
def update_status(
    affiliate_id: int,
    payload: StatusIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
):
    result = affiliates.update_affiliate_status(db, affiliate_id, payload.status)
    log_activity(db, "affiliate_status_changed", result.message, user_id=admin_id, request=request)
    return result.as_dict()


@router.post("/affiliates/{affiliate_id}/commission-rate")
def update_commission_rate(
    affiliate_id: int,
    payload: CommissionRateIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
):
    result = affiliates.update_commission_rate(db, affiliate_id, payload.rate)
    log_activity(db, "affiliate_rate_changed", result.message, user_id=admin_id, request=request)
    return result.as_dict()


@router.post("/affiliates/{affiliate_id}/withdrawals")
def request_withdrawal(affiliate_id: int, payload: WithdrawalIn, db: Session = Depends(get_db)):
    req = affiliates.request_withdrawal(db, affiliate_id, payload.amount, payload.bank_details)
    return {"success": True, "message": "Withdrawal request submitted.", "id": req.id}


@router.get("/withdrawals")
def list_withdrawals(status: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return [
        {
            "id": w.id,
            "affiliate_id": w.affiliate_id,
            "amount": str(w.amount),
            "status": w.status,
            "bank_details": w.bank_details.to_dict(),
            "requested_at": w.requested_at.strftime("%Y-%m-%d %H:%M") if w.requested_at else None,
        }
        for w in affiliates.list_withdrawals(db, status)
    ]


@router.post("/withdrawals/{request_id}/process")
def process_withdrawal(
    request_id: int,
    payload: WithdrawalProcessIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
    mailer=Depends(get_mailer),
):
    result = affiliates.process_withdrawal(db, request_id, payload.status, payload.notes, admin_id, mailer=mailer)
    log_activity(db, "withdrawal_processed", result.message, user_id=admin_id, request=request)
    return result.as_dict()
