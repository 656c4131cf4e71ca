import asyncio
import logging
from agrotrace.models.outbox import OutboxEvent
from agrotrace.consumers.inventory_consumer import handle_order_event
from agrotrace.consumers.notification_consumer import (
    handle_low_stock_alert,
    handle_order_created,
    handle_order_status_changed,
)
from agrotrace.core.db import init_db, close_db
from agrotrace.core.config import POLLING_INTERVAL, MAX_ATTEMPTS, BATCH_SIZE
from agrotrace.events.outbox_utility import ORDER_CREATED, ORDER_STATUS_CHANGED, LOW_STOCK_ALERT

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("outbox_poller")

# Every handler subscribed to an event type runs; each keeps its own idempotency marker
HANDLERS = {
    ORDER_CREATED: [handle_order_event, handle_order_created],
    ORDER_STATUS_CHANGED: [handle_order_event, handle_order_status_changed],
    LOW_STOCK_ALERT: [handle_low_stock_alert],
}


async def dispatch_event(event: OutboxEvent):
    """Routes an OutboxEvent to the handlers subscribed to its type."""
    handlers = HANDLERS.get(event.event_type)
    if not handlers:
        log.warning(f"No handler found for event type: {event.event_type}")
        return

    log.info(f"Poller DISPATCHING: {event.event_type} (ID: {event.id.hex[:8]}...)")
    for handler in handlers:
        await handler(event.payload, event.id)


async def poll_outbox_for_new_events() -> int:
    """
    Queries the Outbox table for unpublished events and attempts to dispatch them.
    Returns the number of events published in this pass.
    """
    # Select events that haven't been published and haven't exceeded max attempts
    events = await OutboxEvent.filter(published=False, attempts__lt=MAX_ATTEMPTS).order_by('created_at').limit(BATCH_SIZE)

    published = 0
    for event in events:
        try:
            await dispatch_event(event)

            event.published = True
            await event.save(update_fields=['published'])
            published += 1

        except Exception:
            # Increment attempts on failure; the event is retried on a later pass
            event.attempts += 1
            await event.save(update_fields=['attempts'])
            log.exception(f"Dispatch failed for event {event.id} (attempt {event.attempts}/{MAX_ATTEMPTS})")
    return published


async def start_outbox_poller():
    """Main loop for the poller service."""
    await init_db()
    log.info("--- Outbox Poller Service Started ---")

    try:
        while True:
            try:
                await poll_outbox_for_new_events()
            except Exception as e:
                log.error(f"Poller encountered a critical DB error: {e}.")

            await asyncio.sleep(POLLING_INTERVAL)
    finally:
        await close_db()


if __name__ == "__main__":
    try:
        asyncio.run(start_outbox_poller())
    except KeyboardInterrupt:
        log.info("Poller service stopped.")
