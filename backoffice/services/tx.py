import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.services.errors import PersistenceFailure, ServiceError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, what: str):
    """
    Одна бизнес-операция = одна транзакция.
    - ServiceError: откат и пробрасываем как есть (сообщение для админа),
    - ошибка базы: откат, подробности в лог, наружу: общий PersistenceFailure.
    """
    try:
        yield
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("%s failed", what)
        raise PersistenceFailure() from e
