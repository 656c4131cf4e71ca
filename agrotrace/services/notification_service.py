import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from tortoise import timezone

from agrotrace.core.config import DEFAULT_NOTIFICATION_LIMIT, LOW_STOCK_RENOTIFY_HOURS
from agrotrace.models.inventory import InventoryItem
from agrotrace.models.notification import (
    Notification,
    NotificationPriority,
    NotificationSetting,
    NotificationType,
)
from agrotrace.models.order import Order, OrderStatus, OrderType, Role
from agrotrace.services.inventory_service import get_low_stock_items

log = logging.getLogger("notification_service")

STATUS_MESSAGES = {
    OrderStatus.PENDING: "is awaiting confirmation",
    OrderStatus.CONFIRMED: "has been confirmed",
    OrderStatus.PROCESSING: "is now being processed",
    OrderStatus.READY: "is ready for pickup/shipping",
    OrderStatus.SHIPPED: "has been shipped",
    OrderStatus.DELIVERED: "has been delivered",
    OrderStatus.CANCELLED: "has been cancelled",
}

# Roles that receive a "new order" alert for pending orders of a given type
NEW_ORDER_RECIPIENTS = {
    Role.PROCESSOR: (OrderType.PROCESSING, "processor_id"),
    Role.DISTRIBUTOR: (OrderType.DISTRIBUTION, "distributor_id"),
}

SETTING_FIELDS = (
    "order_updates",
    "inventory_alerts",
    "delivery_updates",
    "payment_confirmations",
    "email_notifications",
    "push_notifications",
)


def low_stock_key(item_id: str, owner_id: str) -> str:
    return f"low_stock:{item_id}:{owner_id}"


def new_order_key(order_id) -> str:
    return f"new_order:{order_id}"


def order_status_key(order_id, event_id) -> str:
    # Per status-change event: the same status may legitimately be set again later
    return f"order_status:{order_id}:{event_id}"


def payment_key(order_id) -> str:
    return f"payment:{order_id}"


async def create_notification(
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    metadata: Optional[Dict[str, Any]] = None,
    dedup_key: Optional[str] = None,
) -> Notification:
    metadata = dict(metadata or {})
    priority = NotificationPriority(metadata.get("priority") or NotificationPriority.NORMAL)
    metadata["priority"] = priority.value
    return await Notification.create(
        user_id=user_id,
        type=NotificationType(type),
        title=title,
        message=message,
        metadata=metadata,
        priority=priority,
        dedup_key=dedup_key,
    )


async def create_bulk_notifications(
    recipient_ids: Iterable[str],
    type: NotificationType,
    title: str,
    message: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> List[Notification]:
    return [await create_notification(uid, type, title, message, metadata) for uid in recipient_ids]


async def get_user_notifications(user_id: str, limit: int = DEFAULT_NOTIFICATION_LIMIT) -> List[Notification]:
    """Newest first; ordering is applied before the limit."""
    return await Notification.filter(user_id=user_id).order_by("-created_at").limit(limit)


async def mark_notification_read(notification_id: UUID) -> bool:
    return await Notification.filter(id=notification_id).update(read=True) > 0


async def mark_all_notifications_read(user_id: str) -> int:
    return await Notification.filter(user_id=user_id, read=False).update(read=True)


async def delete_notification(notification_id: UUID) -> bool:
    return await Notification.filter(id=notification_id).delete() > 0


async def get_unread_count(user_id: str) -> int:
    notifications = await get_user_notifications(user_id)
    return sum(1 for n in notifications if not n.read)


# ----------- Notifiers -----------

async def notify_order_status_change(
    order: Order, new_status: OrderStatus, recipient_id: str, dedup_key: Optional[str] = None
) -> Notification:
    new_status = OrderStatus(new_status)
    title = f"Order {order.id} Update"
    message = f"Your order {STATUS_MESSAGES.get(new_status, f'status changed to {new_status.value}')}."
    return await create_notification(recipient_id, NotificationType.ORDER_STATUS, title, message, {
        "orderId": str(order.id),
        "newStatus": new_status.value,
        "priority": "high" if new_status == OrderStatus.CANCELLED else "normal",
    }, dedup_key=dedup_key)


async def notify_new_order(order: Order, recipient_id: str) -> Notification:
    title = "New Order Received"
    message = f"You have received a new {order.type.value} order (#{order.id}) for {order.quantity} units."
    return await create_notification(
        recipient_id, NotificationType.NEW_ORDER, title, message,
        {"orderId": str(order.id), "orderType": order.type.value, "priority": "high"},
        dedup_key=new_order_key(order.id),
    )


async def notify_payment_confirmed(
    order: Order, payment_reference: str, recipient_id: str, dedup_key: Optional[str] = None
) -> Notification:
    title = "Payment Confirmed"
    message = f"Payment for order #{order.id} has been confirmed. Reference: {payment_reference}"
    return await create_notification(recipient_id, NotificationType.PAYMENT_CONFIRMED, title, message, {
        "orderId": str(order.id),
        "paymentReference": payment_reference,
        "priority": "normal",
    }, dedup_key=dedup_key)


async def notify_delivery_update(
    order: Order, tracking_info: Dict[str, Any], recipient_id: str, dedup_key: Optional[str] = None
) -> Notification:
    tracking_number = tracking_info.get("tracking_number")
    title = "Delivery Update"
    if tracking_number:
        message = f"Your order #{order.id} is on its way! Tracking: {tracking_number}"
    else:
        message = f"Delivery status update for order #{order.id}"
    return await create_notification(recipient_id, NotificationType.DELIVERY_UPDATE, title, message, {
        "orderId": str(order.id),
        "trackingNumber": tracking_number,
        "estimatedDelivery": tracking_info.get("estimated_delivery"),
        "priority": "normal",
    }, dedup_key=dedup_key)


async def notify_low_stock(item: InventoryItem, recipient_id: str) -> Notification:
    title = "Low Stock Alert"
    if item.current_quantity == 0:
        message = f"{item.item_id} is out of stock!"
    else:
        message = f"{item.item_id} is running low ({item.current_quantity} units remaining)"
    return await create_notification(
        recipient_id, NotificationType.LOW_STOCK, title, message,
        {
            "itemId": item.item_id,
            "currentQuantity": item.current_quantity,
            "priority": "urgent" if item.current_quantity == 0 else "high",
        },
        dedup_key=low_stock_key(item.item_id, item.owner_id),
    )


# ----------- Derived alerts -----------

async def notify_low_stock_if_due(item: InventoryItem, now: Optional[datetime] = None) -> Optional[Notification]:
    """One low-stock alert per item and owner within the re-notify window."""
    now = now or timezone.now()
    since = now - timedelta(hours=LOW_STOCK_RENOTIFY_HOURS)
    recent = await Notification.filter(
        user_id=item.owner_id,
        dedup_key=low_stock_key(item.item_id, item.owner_id),
        created_at__gt=since,
    ).exists()
    if recent:
        return None
    return await notify_low_stock(item, item.owner_id)


async def notification_exists(user_id: str, dedup_key: str) -> bool:
    return await Notification.filter(user_id=user_id, dedup_key=dedup_key).exists()


async def notify_new_order_once(order: Order, recipient_id: str) -> Optional[Notification]:
    if await notification_exists(recipient_id, new_order_key(order.id)):
        return None
    return await notify_new_order(order, recipient_id)


def new_order_recipient(order: Order) -> Optional[str]:
    """The user alerted about a pending processing/distribution order, if any."""
    for order_type, field in NEW_ORDER_RECIPIENTS.values():
        if order.type == order_type:
            return getattr(order, field)
    return None


async def check_and_create_auto_notifications(
    user_id: str, role: str, now: Optional[datetime] = None
) -> List[Notification]:
    """
    Reconciliation scan: low-stock alerts for the user's inventory and new-order
    alerts for pending orders awaiting the user. Already-alerted conditions are
    skipped, so the scan can run on every refresh.
    """
    role = Role(role)
    created = []

    for item in await get_low_stock_items(user_id, role):
        notification = await notify_low_stock_if_due(item, now)
        if notification:
            created.append(notification)

    route = NEW_ORDER_RECIPIENTS.get(role)
    if route:
        order_type, field = route
        pending = await Order.filter(
            type=order_type, status=OrderStatus.PENDING, **{field: user_id}
        ).order_by("created_at")
        for order in pending:
            notification = await notify_new_order_once(order, user_id)
            if notification:
                created.append(notification)

    if created:
        log.info(f"Auto-notifications: {len(created)} created for user {user_id} ({role.value})")
    return created


async def get_notification_stats(user_id: str) -> Dict[str, Any]:
    notifications = await get_user_notifications(user_id)
    return {
        "total": len(notifications),
        "unread": sum(1 for n in notifications if not n.read),
        "by_type": {t.value: sum(1 for n in notifications if n.type == t) for t in NotificationType},
        "by_priority": {
            p.value: sum(1 for n in notifications if n.metadata.get("priority") == p.value)
            for p in (NotificationPriority.URGENT, NotificationPriority.HIGH,
                      NotificationPriority.NORMAL, NotificationPriority.LOW)
        },
    }


# ----------- Settings -----------

def _settings_dict(setting: NotificationSetting) -> Dict[str, bool]:
    return {field: getattr(setting, field) for field in SETTING_FIELDS}


async def get_notification_settings(user_id: str) -> Dict[str, bool]:
    setting = await NotificationSetting.get_or_none(user_id=user_id)
    # Unsaved instance carries the model defaults
    return _settings_dict(setting or NotificationSetting(user_id=user_id))


async def update_notification_settings(user_id: str, settings: Dict[str, bool]) -> Dict[str, bool]:
    """Shallow merge: flags not mentioned keep their stored (or default) value."""
    changes = {k: bool(v) for k, v in settings.items() if k in SETTING_FIELDS and v is not None}
    setting, _ = await NotificationSetting.get_or_create(user_id=user_id)
    if changes:
        setting.update_from_dict(changes)
        await setting.save()
    return _settings_dict(setting)
