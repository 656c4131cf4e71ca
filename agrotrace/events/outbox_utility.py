from typing import Dict, Any, Optional
from agrotrace.models.outbox import OutboxEvent

# Event types published through the outbox
ORDER_CREATED = "order.created.v1"
ORDER_STATUS_CHANGED = "order.status_changed.v1"
LOW_STOCK_ALERT = "inventory.low_stock_alert.v1"


async def create_outbox_event(
    aggregate_type: str,
    aggregate_id: Optional[str],
    event_type: str,
    payload: Dict[str, Any],
    conn: Any = None
) -> OutboxEvent:
    """
    Creates a new Outbox event record using the provided database connection (transaction).

    Passing 'conn' ensures the event is created atomically with the business data.
    """
    return await OutboxEvent.create(
        aggregate_type=aggregate_type,
        aggregate_id=str(aggregate_id) if aggregate_id is not None else None,
        event_type=event_type,
        payload=payload,
        published=False,
        attempts=0,
        using_db=conn
    )
