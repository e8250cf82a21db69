from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.deps import get_admin_id
from backoffice.models.order import OrderItem
from backoffice.schemas import AssignDomainIn, BulkDomainsIn, DomainEditIn, DomainIn
from backoffice.services import domains
from backoffice.services.activity import log_activity
from backoffice.services.errors import InvalidInput, OrderItemNotFound

router = APIRouter(prefix="/admin/domains", tags=["admin-domains"])


def _domain_dict(d):
    return {
        "id": d.id,
        "template_id": d.template_id,
        "domain_name": d.domain_name,
        "status": d.status,
        "assigned_order_id": d.assigned_order_id,
        "notes": d.notes,
    }


@router.get("/available")
def available_domains(
    template_id: Optional[int] = Query(None),
    order_item_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """Список для селекта: по позиции заказа (с текущим доменом) или по шаблону."""
    if order_item_id:
        item = db.get(OrderItem, order_item_id)
        if not item:
            raise OrderItemNotFound()
        rows = domains.available_domains_for_item(db, item)
    elif template_id:
        rows = domains.get_available_domains(db, template_id)
    else:
        raise InvalidInput("template_id or order_item_id is required.")
    return [{"id": d.id, "domain_name": d.domain_name} for d in rows]


@router.post("")
def add_domain(payload: DomainIn, request: Request, db: Session = Depends(get_db), admin_id=Depends(get_admin_id)):
    domain = domains.add_domain(db, payload.template_id, payload.domain_name, payload.notes)
    log_activity(db, "domain_added", f"Added domain {domain.domain_name}", user_id=admin_id, request=request)
    return {"success": True, "message": "Domain added successfully!", "domain": _domain_dict(domain)}


@router.post("/bulk")
def bulk_add(payload: BulkDomainsIn, request: Request, db: Session = Depends(get_db), admin_id=Depends(get_admin_id)):
    added, errors = domains.bulk_add_domains(db, payload.template_id, payload.domain_list)
    log_activity(
        db, "domains_bulk_added", f"Added {added} domains to template #{payload.template_id}",
        user_id=admin_id, request=request,
    )
    message = f"Added {added} domain(s) successfully!"
    if errors:
        message += f" {len(errors)} skipped."
    return {"success": added > 0, "message": message, "added": added, "errors": errors}


@router.post("/{domain_id}/edit")
def edit_domain(
    domain_id: int,
    payload: DomainEditIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
):
    domain = domains.update_domain(
        db, domain_id, payload.template_id, payload.domain_name, payload.status, payload.notes
    )
    log_activity(db, "domain_updated", f"Updated domain {domain.domain_name}", user_id=admin_id, request=request)
    return {"success": True, "message": "Domain updated successfully!", "domain": _domain_dict(domain)}


@router.post("/{domain_id}/delete")
def delete_domain(domain_id: int, request: Request, db: Session = Depends(get_db), admin_id=Depends(get_admin_id)):
    name = domains.delete_domain(db, domain_id)
    log_activity(db, "domain_deleted", f"Deleted domain {name}", user_id=admin_id, request=request)
    return {"success": True, "message": "Domain deleted successfully!"}


@router.post("/{domain_id}/assign")
def assign_domain(
    domain_id: int,
    payload: AssignDomainIn,
    request: Request,
    db: Session = Depends(get_db),
    admin_id=Depends(get_admin_id),
):
    result = domains.assign_order_domain(db, domain_id, payload.order_id, payload.order_item_id)
    log_activity(
        db, "domain_assigned", f"Domain #{domain_id} -> order #{payload.order_id}",
        user_id=admin_id, request=request,
    )
    return result.as_dict()
