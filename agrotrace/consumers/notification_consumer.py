import logging
from typing import Dict, Any
from uuid import UUID

from agrotrace.models.inventory import InventoryItem
from agrotrace.models.order import Order, OrderStatus, OrderType
from agrotrace.models.processed_event import ProcessedEvent
from agrotrace.services.notification_service import (
    new_order_recipient,
    notification_exists,
    notify_delivery_update,
    notify_low_stock_if_due,
    notify_new_order_once,
    notify_order_status_change,
    notify_payment_confirmed,
    order_status_key,
    payment_key,
)

log = logging.getLogger("notification_consumer")

CONSUMER_NAME = "notifications"


async def _already_processed(event_id: UUID) -> bool:
    if await ProcessedEvent.filter(event_id=f"{CONSUMER_NAME}:{event_id}").exists():
        log.info(f"Idempotency: Event {event_id} already processed.")
        return True
    return False


async def _mark_processed(event_id: UUID):
    await ProcessedEvent.get_or_create(event_id=f"{CONSUMER_NAME}:{event_id}")


async def handle_low_stock_alert(event_payload: Dict[str, Any], event_id: UUID):
    """'inventory.low_stock_alert.v1': alert the owner, at most once per re-notify window."""
    if await _already_processed(event_id):
        return

    item = await InventoryItem.get_or_none(
        item_id=event_payload.get("item_id"), owner_id=event_payload.get("owner_id")
    )
    # Stock may have been replenished before the event got here
    if item and item.low_stock_alert:
        await notify_low_stock_if_due(item)

    await _mark_processed(event_id)


async def handle_order_created(event_payload: Dict[str, Any], event_id: UUID):
    """'order.created.v1': new-order alert for the recipient, payment receipt for paid orders."""
    if await _already_processed(event_id):
        return

    order = await Order.get_or_none(id=UUID(event_payload.get("order_id")))
    if not order:
        log.warning(f"Order {event_payload.get('order_id')} not found.")
    else:
        recipient = new_order_recipient(order)
        if recipient and order.status == OrderStatus.PENDING:
            await notify_new_order_once(order, recipient)
        if order.type == OrderType.CONSUMER and order.payment_reference and order.consumer_id:
            key = payment_key(order.id)
            if not await notification_exists(order.consumer_id, key):
                await notify_payment_confirmed(order, order.payment_reference, order.consumer_id, dedup_key=key)

    await _mark_processed(event_id)


async def handle_order_status_changed(event_payload: Dict[str, Any], event_id: UUID):
    """'order.status_changed.v1': tell the buyer. Shipments carry tracking details."""
    if await _already_processed(event_id):
        return

    order = await Order.get_or_none(id=UUID(event_payload.get("order_id")))
    new_status = OrderStatus(event_payload.get("new_status"))
    if not order:
        log.warning(f"Order {event_payload.get('order_id')} not found.")
    elif order.buyer_id:
        # Keyed so a retry after a failed marker write does not notify twice
        key = order_status_key(order.id, event_id)
        if await notification_exists(order.buyer_id, key):
            log.info(f"Status notification for event {event_id} already sent.")
        elif new_status == OrderStatus.SHIPPED and order.tracking_number:
            await notify_delivery_update(order, {
                "tracking_number": order.tracking_number,
                "estimated_delivery": order.estimated_delivery,
            }, order.buyer_id, dedup_key=key)
        else:
            await notify_order_status_change(order, new_status, order.buyer_id, dedup_key=key)

    await _mark_processed(event_id)
