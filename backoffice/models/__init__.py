# backoffice/models/__init__.py
from .catalog import *          # Template, Tool
from .order import *            # PendingOrder, OrderItem, ItemMetadata
from .domain import *           # Domain
from .user import *             # User
from .affiliate import *        # Affiliate, WithdrawalRequest, BankDetails
from .sale import *             # Sale
from .order_status_log import *  # OrderStatusLog
from .activity_log import *     # ActivityLog
from .setting import *          # Setting
