import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from backoffice.services.errors import ServiceError
from backoffice.services.finalizer import cancel_order, mark_order_paid
from backoffice.services.orders import get_order_by_id
from backoffice.services.results import BulkResult
from backoffice.services.site_settings import SiteSettings

logger = logging.getLogger(__name__)

BULK_PAID_NOTES = "Bulk processed"
BULK_CANCEL_REASON = "Bulk cancelled by administrator"


def _clean_ids(order_ids: Iterable, result: BulkResult) -> List[int]:
    """Только целые > 0, без повторов. Остальное: в skipped, в счёт не идёт."""
    ids: List[int] = []
    for raw in order_ids or []:
        try:
            oid = int(raw)
        except (TypeError, ValueError):
            logger.warning("Bulk: skipping invalid order id %r", raw)
            continue
        if oid <= 0:
            logger.warning("Bulk: skipping invalid order id %r", raw)
            result.skipped_ids.append(oid)
            continue
        if oid not in ids:
            ids.append(oid)
    return ids


def bulk_mark_paid(
    db: Session,
    order_ids: Iterable,
    admin_id: Optional[int],
    settings: SiteSettings,
    mailer=None,
) -> BulkResult:
    """Каждый заказ: своя транзакция; упавший не мешает остальным."""
    result = BulkResult()
    for oid in _clean_ids(order_ids, result):
        if get_order_by_id(db, oid) is None:
            logger.warning("Bulk mark paid: order #%s not found, skipped", oid)
            result.skipped_ids.append(oid)
            continue
        try:
            mark_order_paid(db, oid, admin_id, settings, notes=BULK_PAID_NOTES, mailer=mailer)
            result.success_count += 1
        except ServiceError as e:
            logger.warning("Bulk mark paid: order #%s failed: %s", oid, e.message)
            result.fail_count += 1
            result.failed_ids.append(oid)

    logger.info("Bulk mark paid by admin #%s: %s ok, %s failed",
                admin_id, result.success_count, result.fail_count)
    return result


def bulk_cancel(
    db: Session,
    order_ids: Iterable,
    admin_id: Optional[int],
    mailer=None,
) -> BulkResult:
    result = BulkResult()
    for oid in _clean_ids(order_ids, result):
        if get_order_by_id(db, oid) is None:
            logger.warning("Bulk cancel: order #%s not found, skipped", oid)
            result.skipped_ids.append(oid)
            continue
        try:
            cancel_order(db, oid, BULK_CANCEL_REASON, admin_id, mailer=mailer)
            result.success_count += 1
        except ServiceError as e:
            logger.warning("Bulk cancel: order #%s failed: %s", oid, e.message)
            result.fail_count += 1
            result.failed_ids.append(oid)

    logger.info("Bulk cancel by admin #%s: %s ok, %s failed",
                admin_id, result.success_count, result.fail_count)
    return result
