import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from backoffice import config
from backoffice.models.setting import Setting
from backoffice.utils.money import to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiteSettings:
    """Настройки, которые читаются один раз на запрос и передаются в сервисы."""
    site_name: str = config.SITE_NAME
    affiliate_commission_rate: Decimal = config.AFFILIATE_COMMISSION_RATE
    customer_discount_rate: Decimal = config.CUSTOMER_DISCOUNT_RATE


def _rate(raw, default: Decimal, key: str) -> Decimal:
    if raw is None or str(raw).strip() == "":
        return default
    value = to_decimal(raw, default=None)
    if value is None or not value.is_finite() or value < 0 or value > 1:
        logger.warning("Setting %s has invalid value %r, using default %s", key, raw, default)
        return default
    return value


def load_site_settings(db: Session) -> SiteSettings:
    rows = db.query(Setting).filter(Setting.setting_key.in_([
        "site_name", "affiliate_commission_rate", "customer_discount_rate",
    ])).all()
    values = {r.setting_key: r.setting_value for r in rows}

    return SiteSettings(
        site_name=(values.get("site_name") or config.SITE_NAME),
        affiliate_commission_rate=_rate(
            values.get("affiliate_commission_rate"), config.AFFILIATE_COMMISSION_RATE, "affiliate_commission_rate"
        ),
        customer_discount_rate=_rate(
            values.get("customer_discount_rate"), config.CUSTOMER_DISCOUNT_RATE, "customer_discount_rate"
        ),
    )
