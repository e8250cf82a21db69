"""Пул доменов под шаблоны и их выдача заказам.

Занятие домена: всегда один условный UPDATE
(WHERE status = 'available') с проверкой rowcount: два админа,
выдающие один и тот же домен, не могут оба получить успех.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import and_, delete, or_, update
from sqlalchemy.orm import Session

from backoffice.models.catalog import Template
from backoffice.models.domain import Domain
from backoffice.models.order import OrderItem, PendingOrder
from backoffice.services.errors import (
    ConflictingAssignment,
    DomainNotFound,
    InvalidDomain,
    InvalidInput,
    InvalidState,
    OrderItemNotFound,
    OrderNotFound,
    OrderNotPaid,
)
from backoffice.services.results import ActionResult
from backoffice.services.tx import atomic
from backoffice.utils.enums import DomainStatus, OrderStatus, ProductType

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = {DomainStatus.AVAILABLE.value, DomainStatus.SUSPENDED.value}


# ---------- ВЫБОРКИ ----------
def get_available_domains(
    db: Session,
    template_id: int,
    current_domain_id: Optional[int] = None,
) -> List[Domain]:
    """Свободные домены шаблона + текущий выбранный (даже если он уже in_use),
    чтобы админ видел и мог оставить текущий выбор."""
    cond = and_(Domain.template_id == template_id, Domain.status == DomainStatus.AVAILABLE.value)
    if current_domain_id:
        cond = or_(cond, Domain.id == current_domain_id)
    return db.query(Domain).filter(cond).order_by(Domain.domain_name.asc()).all()


def available_domains_for_item(db: Session, item: OrderItem) -> List[Domain]:
    if item.product_type != ProductType.TEMPLATE.value:
        return []
    current = item.meta.domain_id
    if current:
        domain = db.get(Domain, current)
        # показываем только если домен действительно за этим заказом
        if not domain or (
            domain.status == DomainStatus.IN_USE.value
            and domain.assigned_order_id != item.pending_order_id
        ):
            current = None
    return get_available_domains(db, item.product_id, current)


# ---------- НИЗКОУРОВНЕВЫЕ ОПЕРАЦИИ (без commit) ----------
def _claim_domain(db: Session, domain: Domain, order_id: int) -> None:
    result = db.execute(
        update(Domain)
        .where(Domain.id == domain.id, Domain.status == DomainStatus.AVAILABLE.value)
        .values(
            status=DomainStatus.IN_USE.value,
            assigned_order_id=order_id,
            updated_at=datetime.utcnow(),
        )
    )
    if result.rowcount != 1:
        logger.warning("Domain #%s lost assignment race for order #%s", domain.id, order_id)
        raise ConflictingAssignment(
            f"Domain {domain.domain_name} was just assigned to another order."
        )


def _release_domain(db: Session, domain_id: int, order_id: int) -> None:
    # возвращаем в пул только если домен всё ещё держит этот же заказ
    db.execute(
        update(Domain)
        .where(
            Domain.id == domain_id,
            Domain.assigned_order_id == order_id,
            Domain.status == DomainStatus.IN_USE.value,
        )
        .values(
            status=DomainStatus.AVAILABLE.value,
            assigned_order_id=None,
            updated_at=datetime.utcnow(),
        )
    )


def _load_assignable(db: Session, domain_id: int, template_id: Optional[int]) -> Domain:
    domain = db.get(Domain, domain_id) if domain_id and domain_id > 0 else None
    if not domain:
        raise InvalidDomain(f"Domain #{domain_id} does not exist.")
    if template_id and domain.template_id != template_id:
        raise InvalidDomain(f"Domain {domain.domain_name} does not belong to this template.")
    if domain.status != DomainStatus.AVAILABLE.value:
        raise InvalidDomain(f"Domain {domain.domain_name} is not available.")
    return domain


def assign_item_domain(db: Session, order_item_id: int, domain_id: int, order_id: int) -> str:
    """Закрепляет домен за позицией-шаблоном. Коммит: на вызывающем."""
    item = db.get(OrderItem, order_item_id) if order_item_id and order_item_id > 0 else None
    if not item or item.pending_order_id != order_id:
        raise OrderItemNotFound(f"Order item #{order_item_id} not found in order #{order_id}.")
    if item.product_type != ProductType.TEMPLATE.value:
        raise InvalidInput("Only template items can have a domain assigned.")

    meta = item.meta
    if meta.domain_id == domain_id:
        current = db.get(Domain, domain_id)
        if (
            current
            and current.status == DomainStatus.IN_USE.value
            and current.assigned_order_id == order_id
        ):
            return f"Domain {current.domain_name} is already assigned to item #{item.id}."

    domain = _load_assignable(db, domain_id, item.product_id)
    _claim_domain(db, domain, order_id)

    if meta.domain_id and meta.domain_id != domain_id:
        _release_domain(db, meta.domain_id, order_id)

    meta.domain_id = domain.id
    item.set_meta(meta)
    return f"Domain {domain.domain_name} assigned to item #{item.id}."


def assign_domain_to_customer(db: Session, domain_id: int, order: PendingOrder) -> str:
    """Старый путь: один домен на весь заказ через chosen_domain_id."""
    if not order.template_id:
        # у заказа из позиций нет шаблона: домен выдаётся только позиции
        raise InvalidInput("This order has no template; assign the domain to an order item instead.")
    if order.chosen_domain_id == domain_id:
        current = db.get(Domain, domain_id)
        if current and current.assigned_order_id == order.id and current.status == DomainStatus.IN_USE.value:
            return f"Domain {current.domain_name} is already assigned to order #{order.id}."

    domain = _load_assignable(db, domain_id, order.template_id)
    _claim_domain(db, domain, order.id)

    previous = order.chosen_domain_id
    if previous and previous != domain_id:
        _release_domain(db, previous, order.id)

    order.chosen_domain_id = domain.id
    return f"Domain {domain.domain_name} assigned to order #{order.id}."


# ---------- ПУБЛИЧНЫЕ ОПЕРАЦИИ (каждая: своя транзакция) ----------
def set_order_item_domain(db: Session, order_item_id: int, domain_id: int, order_id: int) -> ActionResult:
    with atomic(db, "set_order_item_domain"):
        message = assign_item_domain(db, order_item_id, domain_id, order_id)
    logger.info("Order #%s item #%s -> domain #%s", order_id, order_item_id, domain_id)
    return ActionResult(True, message)


def assign_order_domain(
    db: Session,
    domain_id: int,
    order_id: int,
    order_item_id: Optional[int] = None,
) -> ActionResult:
    """Выдача домена уже оплаченному заказу (из карточки домена/заказа)."""
    if order_id <= 0 or domain_id <= 0:
        raise InvalidInput("Invalid order or domain ID.")
    order = db.get(PendingOrder, order_id)
    if not order:
        raise OrderNotFound(f"Order #{order_id} not found.")
    if order.status != OrderStatus.PAID.value:
        raise OrderNotPaid(
            f"Cannot assign domain to this order. Order status is '{order.status}' - "
            "only paid orders can have domains assigned."
        )

    with atomic(db, "assign_order_domain"):
        if order_item_id:
            message = assign_item_domain(db, order_item_id, domain_id, order_id)
        else:
            message = assign_domain_to_customer(db, domain_id, order)
    return ActionResult(True, message)


def update_order_domains(
    db: Session,
    order_id: int,
    assignments: Iterable[Tuple[int, int]],
    notes: Optional[str] = None,
) -> ActionResult:
    """Правка оплаченного заказа: заметки + домены позиций, всё или ничего."""
    order = db.get(PendingOrder, order_id) if order_id and order_id > 0 else None
    if not order:
        raise OrderNotFound(f"Order #{order_id} not found.")
    if order.status != OrderStatus.PAID.value:
        raise OrderNotPaid(
            f"Cannot assign domains to this order. Order status is '{order.status}' - "
            "only paid orders can have domains assigned."
        )

    assignments = [(int(i), int(d)) for i, d in assignments if int(i) > 0 and int(d) > 0]
    update_count = 0
    with atomic(db, "update_order_domains"):
        if notes:
            order.payment_notes = notes
            update_count += 1
        for order_item_id, domain_id in assignments:
            assign_item_domain(db, order_item_id, domain_id, order_id)
            update_count += 1
        if update_count == 0:
            raise InvalidInput("No changes were made.")

    return ActionResult(True, f"Updated {update_count} item(s) successfully!")


# ---------- ИНВЕНТАРЬ ДОМЕНОВ ----------
def _normalize_name(domain_name: Optional[str]) -> str:
    return (domain_name or "").strip().lower()


def add_domain(db: Session, template_id: int, domain_name: str, notes: Optional[str] = None) -> Domain:
    name = _normalize_name(domain_name)
    if not name or not template_id or template_id <= 0:
        raise InvalidInput("Domain name and template are required.")
    if not db.get(Template, template_id):
        raise InvalidInput(f"Template #{template_id} does not exist.")
    if db.query(Domain.id).filter(Domain.domain_name == name).first():
        raise InvalidInput(f"Domain {name} already exists.")

    domain = Domain(
        template_id=template_id,
        domain_name=name,
        status=DomainStatus.AVAILABLE.value,
        notes=notes or None,
    )
    with atomic(db, "add_domain"):
        db.add(domain)
    db.refresh(domain)
    return domain


def bulk_add_domains(db: Session, template_id: int, domain_list: str) -> Tuple[int, List[str]]:
    """Одна строка: один домен. Ошибки по строкам копим, остальное добавляем."""
    if not template_id or template_id <= 0 or not (domain_list or "").strip():
        raise InvalidInput("Template and domain list are required.")
    if not db.get(Template, template_id):
        raise InvalidInput(f"Template #{template_id} does not exist.")

    names = [_normalize_name(line) for line in domain_list.splitlines()]
    names = [n for n in names if n]

    existing = {
        row.domain_name
        for row in db.query(Domain.domain_name).filter(Domain.domain_name.in_(names)).all()
    } if names else set()

    errors: List[str] = []
    seen = set()
    added = 0
    with atomic(db, "bulk_add_domains"):
        for name in names:
            if name in existing or name in seen:
                errors.append(f"{name}: already exists")
                continue
            seen.add(name)
            db.add(Domain(template_id=template_id, domain_name=name, status=DomainStatus.AVAILABLE.value))
            added += 1

    if errors:
        logger.info("Bulk domain import for template #%s: %s added, %s skipped", template_id, added, len(errors))
    return added, errors


def update_domain(
    db: Session,
    domain_id: int,
    template_id: int,
    domain_name: str,
    status: Optional[str] = None,
    notes: Optional[str] = None,
) -> Domain:
    domain = db.get(Domain, domain_id) if domain_id and domain_id > 0 else None
    if not domain:
        raise DomainNotFound()
    name = _normalize_name(domain_name)
    if not name or not template_id or template_id <= 0:
        raise InvalidInput("Domain name and template are required.")
    if name != domain.domain_name and db.query(Domain.id).filter(Domain.domain_name == name).first():
        raise InvalidInput(f"Domain {name} already exists.")

    in_use = domain.status == DomainStatus.IN_USE.value
    if in_use:
        # занятый домен: только имя и заметки
        if template_id != domain.template_id:
            raise InvalidState("Domain is in use and cannot be moved to another template.")
        if status and status != DomainStatus.IN_USE.value:
            raise InvalidState("Domain is in use; its status cannot be changed here.")
    else:
        if status and status not in EDITABLE_STATUSES:
            raise InvalidInput("Status must be 'available' or 'suspended'.")
        if not db.get(Template, template_id):
            raise InvalidInput(f"Template #{template_id} does not exist.")

    with atomic(db, "update_domain"):
        domain.domain_name = name
        domain.notes = notes or None
        if not in_use:
            domain.template_id = template_id
            if status:
                domain.status = status
    db.refresh(domain)
    return domain


def delete_domain(db: Session, domain_id: int) -> str:
    domain = db.get(Domain, domain_id) if domain_id and domain_id > 0 else None
    if not domain:
        raise DomainNotFound()
    name = domain.domain_name

    with atomic(db, "delete_domain"):
        result = db.execute(
            delete(Domain)
            .where(Domain.id == domain_id, Domain.status == DomainStatus.AVAILABLE.value)
        )
        if result.rowcount != 1:
            raise InvalidState("Cannot delete domain. It may be in use or already assigned.")
    return name
