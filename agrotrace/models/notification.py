from enum import Enum
from tortoise import fields, models
import uuid


class NotificationType(str, Enum):
    ORDER_STATUS = "order_status"
    PAYMENT_CONFIRMED = "payment_confirmed"
    INVENTORY_ALERT = "inventory_alert"
    DELIVERY_UPDATE = "delivery_update"
    NEW_ORDER = "new_order"
    LOW_STOCK = "low_stock"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Notification(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    user_id = fields.CharField(max_length=64)  # Recipient
    type = fields.CharEnumField(NotificationType)
    title = fields.CharField(max_length=255)
    message = fields.TextField()
    metadata = fields.JSONField(default=dict)  # Context ids; always carries "priority"
    priority = fields.CharEnumField(NotificationPriority, default=NotificationPriority.NORMAL)
    read = fields.BooleanField(default=False)
    # Idempotency key for derived alerts, e.g. "low_stock:<item>:<owner>" or "new_order:<order>"
    dedup_key = fields.CharField(max_length=160, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "notifications"
        indexes = [
            ("user_id", "created_at"),
            ("user_id", "read"),
            ("user_id", "dedup_key"),
        ]


class NotificationSetting(models.Model):
    """Per-user delivery preferences. Stored and returned, not enforced."""
    user_id = fields.CharField(max_length=64, primary_key=True)
    order_updates = fields.BooleanField(default=True)
    inventory_alerts = fields.BooleanField(default=True)
    delivery_updates = fields.BooleanField(default=True)
    payment_confirmations = fields.BooleanField(default=True)
    email_notifications = fields.BooleanField(default=False)
    push_notifications = fields.BooleanField(default=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "notification_settings"
