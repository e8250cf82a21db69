"""Ошибки бэк-офиса.

Сервисы бросают их, роутеры не ловят: обработчик в main.py превращает
любую ServiceError в {"success": false, "message": ...} с нужным кодом.
"""


class ServiceError(Exception):
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --------- 404 ----------
class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found."


class OrderNotFound(NotFound):
    default_message = "Order not found."


class OrderItemNotFound(NotFound):
    default_message = "Order item not found."


class DomainNotFound(NotFound):
    default_message = "Domain not found."


class AffiliateNotFound(NotFound):
    default_message = "Affiliate not found."


class WithdrawalNotFound(NotFound):
    default_message = "Withdrawal request not found."


# --------- 409: неверное состояние ----------
class InvalidState(ServiceError):
    status_code = 409
    default_message = "Action is not allowed in the current state."


class OrderNotPending(InvalidState):
    default_message = "Order is not pending."


class OrderNotPaid(InvalidState):
    default_message = "Only paid orders can have domains assigned."


# --------- 400: кривой ввод ----------
class InvalidInput(ServiceError):
    status_code = 400
    default_message = "Invalid input."


class InvalidAmount(InvalidInput):
    default_message = "Invalid order amount. Cannot process payment."


class InvalidDomain(InvalidInput):
    default_message = "Domain is not available."


class InvalidAffiliateCode(InvalidInput):
    default_message = "Affiliate code must be 4-20 characters (letters and numbers only)."


class ConflictingAssignment(InvalidDomain):
    """Домен успели занять между проверкой и записью."""
    status_code = 409
    default_message = "Domain was just assigned to another order."


# --------- 500 ----------
class PersistenceFailure(ServiceError):
    status_code = 500
    default_message = "Database error occurred. Please try again."
