import logging
from agrotrace.models.order import Order, OrderStatus, SALE_STATUSES
from agrotrace.models.processed_event import ProcessedEvent
from agrotrace.services.inventory_service import apply_order_sale, release_order_reservations
from typing import Dict, Any
from uuid import UUID

log = logging.getLogger("inventory_consumer")

CONSUMER_NAME = "inventory"


async def handle_order_event(event_payload: Dict[str, Any], event_id: UUID):
    """
    Consumer logic for 'order.created.v1' and 'order.status_changed.v1'.
    Confirmed/delivered orders are deducted from the seller's stock (once per order);
    cancelled orders give back whatever the seller still has reserved for them.
    """
    order_id = UUID(event_payload.get("order_id"))
    marker = f"{CONSUMER_NAME}:{event_id}"

    # Idempotency Check
    if await ProcessedEvent.filter(event_id=marker).exists():
        log.info(f"Idempotency: Event {event_id} already processed.")
        return

    order = await Order.get_or_none(id=order_id)
    if not order:
        log.warning(f"Order {order_id} not found, nothing to apply.")
    elif order.status in SALE_STATUSES:
        item = await apply_order_sale(order)
        if item:
            log.info(f"Stock deducted for order {order_id}: {item.item_id} now {item.current_quantity}")
    elif order.status == OrderStatus.CANCELLED:
        item = await release_order_reservations(order)
        if item:
            log.info(f"Reservation released for cancelled order {order_id}")

    await ProcessedEvent.get_or_create(event_id=marker)
