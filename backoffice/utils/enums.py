from enum import Enum

class UserRole(str, Enum):
    ADMIN = "admin"
    AFFILIATE = "affiliate"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    TEMPLATE = "template"
    TOOL = "tool"
    MIXED = "mixed"


class ProductType(str, Enum):
    TEMPLATE = "template"
    TOOL = "tool"


class DomainStatus(str, Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    SUSPENDED = "suspended"


class AffiliateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"
