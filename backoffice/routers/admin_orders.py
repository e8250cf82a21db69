from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.deps import get_admin_id, get_site_settings
from backoffice.notify.mailer import get_mailer
from backoffice.schemas import BulkIdsIn, CancelIn, FinalizeIn, OrderDomainsIn
from backoffice.services import bulk, domains, export, finalizer
from backoffice.services.activity import log_activity
from backoffice.services.errors import OrderNotFound
from backoffice.services.orders import compute_order_amount, get_order_by_id, get_order_items
from backoffice.services.site_settings import SiteSettings
from backoffice.utils.enums import OrderStatus

router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


def _money(value) -> str:
    return str(value) if value is not None else None


# --------- МАССОВЫЕ ДЕЙСТВИЯ ----------
@router.post("/bulk-finalize")
def bulk_finalize(
    payload: BulkIdsIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
    settings: SiteSettings = Depends(get_site_settings),
    mailer=Depends(get_mailer),
):
    result = bulk.bulk_mark_paid(db, payload.ids, admin_id, settings, mailer=mailer)
    log_activity(
        db, "bulk_orders_processed",
        f"Processed {result.success_count} orders, {result.fail_count} failed",
        user_id=admin_id, request=request,
    )
    return result.as_dict()


@router.post("/bulk-cancel")
def bulk_cancel(
    payload: BulkIdsIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
    mailer=Depends(get_mailer),
):
    result = bulk.bulk_cancel(db, payload.ids, admin_id, mailer=mailer)
    log_activity(
        db, "bulk_orders_cancelled",
        f"Cancelled {result.success_count} orders, {result.fail_count} failed",
        user_id=admin_id, request=request,
    )
    return result.as_dict()


# ---------- ВЫГРУЗКА ----------
@router.get("/export.xlsx")
def export_orders_xlsx(
    request: Request,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
):
    today = date.today()
    start_date = start_date or today.replace(day=1)
    end_date = end_date or today

    rows = export.orders_for_export(db, start_date, end_date)
    bio = export.build_orders_workbook(rows)
    log_activity(
        db, "export_orders", f"Exported orders from {start_date} to {end_date}",
        user_id=admin_id, request=request,
    )

    filename = f"orders_{start_date}_to_{end_date}.xlsx"
    return StreamingResponse(
        bio,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------- ДЕТАЛИ ЗАКАЗА ----------
@router.get("/{order_id}")
def order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    settings: SiteSettings = Depends(get_site_settings),
):
    order = get_order_by_id(db, order_id)
    if not order:
        raise OrderNotFound()

    items = get_order_items(db, order_id)
    amount = compute_order_amount(db, order, items, settings)

    return {
        "id": order.id,
        "status": order.status,
        "order_type": order.order_type,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "affiliate_code": order.affiliate_code,
        "original_price": _money(order.original_price),
        "discount_amount": _money(order.discount_amount),
        "final_amount": _money(order.final_amount),
        "computed_amount": str(amount),
        "chosen_domain_id": order.chosen_domain_id,
        "payment_notes": order.payment_notes,
        "created_at": order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else None,
        "items": [
            {
                "id": it.id,
                "product_type": it.product_type,
                "product_id": it.product_id,
                "quantity": it.quantity,
                "unit_price": _money(it.unit_price),
                "final_amount": _money(it.final_amount),
                "domain_id": it.meta.domain_id,
                "available_domains": [
                    {"id": d.id, "domain_name": d.domain_name}
                    for d in domains.available_domains_for_item(db, it)
                ],
            }
            for it in items
        ],
        "can_finalize": order.status == OrderStatus.PENDING.value,
    }


# ---------- ПОДТВЕРЖДЕНИЕ ОПЛАТЫ ----------
@router.post("/{order_id}/finalize")
def finalize_order(
    order_id: int,
    payload: FinalizeIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
    settings: SiteSettings = Depends(get_site_settings),
    mailer=Depends(get_mailer),
):
    result = finalizer.mark_order_paid(
        db, order_id, admin_id, settings,
        amount_paid=payload.amount_paid,
        notes=payload.notes,
        domain_assignments=payload.assignment_pairs(),
        mailer=mailer,
    )
    log_activity(
        db, "order_marked_paid",
        f"Order #{order_id} marked as paid ({result.amount_paid})",
        user_id=admin_id, request=request,
    )
    return result.as_dict()


# ---------- ОТМЕНА ----------
@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    payload: CancelIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
    mailer=Depends(get_mailer),
):
    result = finalizer.cancel_order(db, order_id, payload.reason or "", admin_id, mailer=mailer)
    log_activity(db, "order_cancelled", f"Order #{order_id} cancelled", user_id=admin_id, request=request)
    return result.as_dict()


# ---------- ДОМЕНЫ ОПЛАЧЕННОГО ЗАКАЗА ----------
@router.post("/{order_id}/domains")
def update_order_domains(
    order_id: int,
    payload: OrderDomainsIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
):
    pairs = [(a.order_item_id, a.domain_id) for a in payload.domain_assignments if a.order_item_id]
    result = domains.update_order_domains(db, order_id, pairs, payload.notes)
    log_activity(
        db, "order_domains_updated", f"Order #{order_id}: {result.message}",
        user_id=admin_id, request=request,
    )
    return result.as_dict()
