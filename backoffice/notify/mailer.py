import logging
from html import escape
from typing import Optional

import requests

from backoffice import config
from backoffice.utils.money import format_currency

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, api_url: str, api_key: str, sender: str, timeout: float = 10):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def send(self, to: Optional[str], subject: str, html: str) -> bool:
        """Отправить письмо через HTTP API. Ошибки только в лог: заказ уже сохранён."""
        if not to:
            logger.warning("Mail %r skipped: no recipient", subject)
            return False
        if not self.api_key:
            logger.info("MAIL_API_KEY not set, mail to %s not sent: %s", to, subject)
            return False
        try:
            resp = requests.post(
                self.api_url,
                json={"from": self.sender, "to": [to], "subject": subject, "html": html},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return True
        except requests.RequestException:
            logger.exception("Error sending mail to %s", to)
            return False

    def send_order_confirmed(self, order, amount) -> bool:
        """Письмо покупателю: оплата подтверждена"""
        # имя вводит покупатель: экранируем перед вставкой в HTML
        name = escape(order.customer_name or "Customer")
        lines = [
            f"<p>Hi {name},</p>",
            f"<p>Your payment for order <b>#{order.id}</b> has been confirmed.</p>",
            f"<p>Amount paid: <b>{format_currency(amount)}</b></p>",
        ]
        if order.items:
            lines.append(
                f"<p>Your order contains {len(order.items)} item(s). "
                "We will be in touch with setup details shortly.</p>"
            )
        lines.append(f"<p>Thank you for choosing {config.SITE_NAME}!</p>")
        return self.send(
            order.customer_email,
            f"Payment confirmed - Order #{order.id}",
            "\n".join(lines),
        )

    def send_order_cancelled(self, order, reason: str) -> bool:
        name = escape(order.customer_name or "Customer")
        lines = [
            f"<p>Hi {name},</p>",
            f"<p>Your order <b>#{order.id}</b> has been cancelled.</p>",
        ]
        if reason:
            lines.append(f"<p>Reason: {escape(reason)}</p>")
        lines.append(f"<p>If you believe this is a mistake, please contact {config.SITE_NAME} support.</p>")
        return self.send(
            order.customer_email,
            f"Order #{order.id} cancelled",
            "\n".join(lines),
        )

    def send_withdrawal_processed(self, withdrawal, status: str) -> bool:
        affiliate = withdrawal.affiliate
        user = affiliate.user if affiliate else None
        if user is None:
            logger.warning("Withdrawal #%s: affiliate has no user, mail skipped", withdrawal.id)
            return False
        return self.send(
            user.email,
            f"Withdrawal request #{withdrawal.id} {status}",
            f"<p>Hi {escape(user.name or affiliate.code)},</p>"
            f"<p>Your withdrawal request of <b>{format_currency(withdrawal.amount)}</b> is now <b>{status}</b>.</p>",
        )


# глобальный экземпляр
mailer = Mailer(
    api_url=config.MAIL_API_URL,
    api_key=config.MAIL_API_KEY,
    sender=config.MAIL_FROM,
    timeout=config.MAIL_TIMEOUT,
)


def get_mailer() -> Mailer:
    return mailer
