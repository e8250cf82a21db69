import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    action: str,
    details: str = "",
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
) -> bool:
    """Запись в журнал действий. Вызывается ПОСЛЕ основного commit,
    поэтому ошибка здесь ничего не откатывает: только лог."""
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = request.client.host if request.client else None
        user_agent = (request.headers.get("user-agent") or "")[:500]

    try:
        db.add(ActivityLog(
            user_id=user_id,
            action=action,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error logging activity %s", action)
        return False
