# agrotrace/models/__init__.py
from .catalog import Batch, BatchStatus, Product
from .inventory import InventoryItem, ItemType, StockAction
from .notification import Notification, NotificationPriority, NotificationSetting, NotificationType
from .order import Order, OrderStatus, OrderType, Role, SALE_STATUSES
from .outbox import OutboxEvent
from .processed_event import ProcessedEvent
from .traceability import TraceEvent, TraceEventType

# Export all models
__all__ = [
    "Batch",
    "BatchStatus",
    "InventoryItem",
    "ItemType",
    "Notification",
    "NotificationPriority",
    "NotificationSetting",
    "NotificationType",
    "Order",
    "OrderStatus",
    "OrderType",
    "OutboxEvent",
    "ProcessedEvent",
    "Product",
    "Role",
    "SALE_STATUSES",
    "StockAction",
    "TraceEvent",
    "TraceEventType",
]
