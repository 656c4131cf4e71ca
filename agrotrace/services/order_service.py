import logging
import secrets
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from agrotrace.events.outbox_utility import create_outbox_event, ORDER_CREATED, ORDER_STATUS_CHANGED
from agrotrace.models.order import Order, OrderStatus, OrderType, Role

log = logging.getLogger("order_service")

# Order columns a status update may merge; anything else lands in Order.details
_MERGEABLE_FIELDS = {
    "delivery_address", "contact_phone", "customer_name", "supplier_name",
    "special_instructions", "payment_reference", "tracking_number",
    "estimated_delivery", "shipped_at", "quantity", "unit", "total_amount",
}

# Which participant column identifies the user on each side of an order, per role.
# incoming: orders the user buys; outgoing: orders the user sells.
ROUTING = {
    Role.FARMER: {
        "incoming": None,
        "outgoing": (OrderType.PROCESSING, "farmer_id"),
    },
    Role.PROCESSOR: {
        "incoming": (OrderType.PROCESSING, "processor_id"),
        "outgoing": (OrderType.DISTRIBUTION, "processor_id"),
    },
    Role.DISTRIBUTOR: {
        "incoming": (OrderType.DISTRIBUTION, "distributor_id"),
        "outgoing": (OrderType.CONSUMER, "distributor_id"),
    },
    Role.CONSUMER: {
        "incoming": (OrderType.CONSUMER, "consumer_id"),
        "outgoing": None,
    },
}

# Participant columns populated for each order type: (seller, buyer)
PARTICIPANTS = {
    OrderType.PROCESSING: ("farmer_id", "processor_id"),
    OrderType.DISTRIBUTION: ("processor_id", "distributor_id"),
    OrderType.CONSUMER: ("distributor_id", "consumer_id"),
}


def _order_payload(order: Order) -> Dict[str, Any]:
    return {
        "order_id": str(order.id),
        "type": order.type.value,
        "status": order.status.value,
        "seller_id": order.seller_id,
        "buyer_id": order.buyer_id,
        "item_id": order.item_id,
        "quantity": order.quantity,
    }


async def create_order(
    kind: OrderType,
    participants: Dict[str, str],
    item_ref: Dict[str, Any],
    total_amount: Decimal,
    delivery_info: Optional[Dict[str, Any]] = None,
    payment_reference: Optional[str] = None,
) -> Order:
    """
    Creates an order of the given type and queues an 'order.created.v1' event in
    the same transaction. Processing and distribution orders start as pending;
    consumer orders are confirmed since they are paid at checkout.

    participants: {"seller_id": ..., "buyer_id": ...}
    item_ref: {"id", "name", "quantity", "unit", "unit_price", "supplier_name"}
    """
    kind = OrderType(kind)
    delivery_info = delivery_info or {}
    seller_field, buyer_field = PARTICIPANTS[kind]
    item_field = "batch" if kind == OrderType.PROCESSING else "product"

    fields = {
        "type": kind,
        seller_field: participants.get("seller_id"),
        buyer_field: participants.get("buyer_id"),
        f"{item_field}_id": item_ref.get("id"),
        f"{item_field}_name": item_ref.get("name"),
        "quantity": int(item_ref.get("quantity") or 0),
        "unit": item_ref.get("unit") or "units",
        "unit_price": item_ref.get("unit_price"),
        "total_amount": Decimal(str(total_amount)),
        "status": OrderStatus.CONFIRMED if kind == OrderType.CONSUMER else OrderStatus.PENDING,
        "delivery_address": delivery_info.get("address"),
        "contact_phone": delivery_info.get("phone"),
        "customer_name": delivery_info.get("customer_name"),
        "supplier_name": item_ref.get("supplier_name"),
        "special_instructions": delivery_info.get("instructions"),
        "payment_reference": payment_reference,
    }
    if kind == OrderType.PROCESSING:
        # Processing orders also carry the crop as the product name
        fields["product_name"] = item_ref.get("crop_type")

    async with in_transaction() as conn:
        order = await Order.create(using_db=conn, **fields)
        await create_outbox_event(
            aggregate_type="order",
            aggregate_id=order.id,
            event_type=ORDER_CREATED,
            payload=_order_payload(order),
            conn=conn,
        )

    log.info(f"Order {order.id} ({kind.value}) created with status {order.status.value}")
    return order


async def create_processing_order(
    farmer_id: str, processor_id: str, batch: Dict[str, Any], total_amount: Decimal, delivery_info: Dict[str, Any]
) -> Order:
    """Processor buys a harvest batch from a farmer."""
    return await create_order(
        OrderType.PROCESSING,
        {"seller_id": farmer_id, "buyer_id": processor_id},
        {
            "id": batch.get("id"),
            "name": batch.get("name"),
            "crop_type": batch.get("crop_type"),
            "quantity": batch.get("quantity"),
            "unit": batch.get("unit"),
            "supplier_name": batch.get("farmer_name"),
        },
        total_amount,
        delivery_info,
    )


async def create_distribution_order(
    processor_id: str, distributor_id: str, product: Dict[str, Any], total_amount: Decimal, delivery_info: Dict[str, Any]
) -> Order:
    """Distributor buys processed product from a processor."""
    return await create_order(
        OrderType.DISTRIBUTION,
        {"seller_id": processor_id, "buyer_id": distributor_id},
        {
            "id": product.get("id"),
            "name": product.get("name"),
            "quantity": product.get("quantity"),
            "unit": product.get("unit"),
            "supplier_name": product.get("processor_name"),
        },
        total_amount,
        delivery_info,
    )


async def create_consumer_order(
    distributor_id: str,
    consumer_id: str,
    cart_items: List[Dict[str, Any]],
    delivery_info: Dict[str, Any],
    payment_reference: Optional[str],
) -> List[Order]:
    """One confirmed order per cart line, each totalled as price * quantity."""
    orders = []
    for cart_item in cart_items:
        price = Decimal(str(cart_item.get("price") or 0))
        quantity = int(cart_item.get("quantity") or 0)
        order = await create_order(
            OrderType.CONSUMER,
            {"seller_id": distributor_id, "buyer_id": consumer_id},
            {
                "id": cart_item.get("id"),
                "name": cart_item.get("name"),
                "quantity": quantity,
                "unit": cart_item.get("unit"),
                "unit_price": price,
                "supplier_name": cart_item.get("distributor_name"),
            },
            price * quantity,
            delivery_info,
            payment_reference=payment_reference,
        )
        orders.append(order)
    return orders


async def get_all_orders() -> List[Order]:
    return await Order.all().order_by("-created_at")


async def get_order(order_id: UUID) -> Optional[Order]:
    return await Order.get_or_none(id=order_id)


async def _orders_for(user_id: str, side) -> List[Order]:
    if side is None:
        return []
    order_type, participant_field = side
    return await Order.filter(type=order_type, **{participant_field: user_id}).order_by("-created_at")


async def get_orders_by_user(user_id: str, role: str) -> Dict[str, List[Order]]:
    """Splits a user's orders into incoming (purchases) and outgoing (sales)."""
    try:
        routes = ROUTING[Role(role)]
    except ValueError:
        return {"incoming": [], "outgoing": []}
    return {
        "incoming": await _orders_for(user_id, routes["incoming"]),
        "outgoing": await _orders_for(user_id, routes["outgoing"]),
    }


async def update_order_status(
    order_id: UUID, new_status: OrderStatus, extra: Optional[Dict[str, Any]] = None
) -> Optional[Order]:
    """
    Sets any status from any status and merges `extra` into the order. Known
    columns are updated in place; other keys are kept in `details`.
    Returns None when the order does not exist.
    """
    new_status = OrderStatus(new_status)
    extra = dict(extra or {})

    async with in_transaction() as conn:
        order = await Order.filter(id=order_id).using_db(conn).select_for_update().first()
        if not order:
            return None

        old_status = order.status
        columns = {k: v for k, v in extra.items() if k in _MERGEABLE_FIELDS}
        leftovers = {k: v for k, v in extra.items() if k not in _MERGEABLE_FIELDS}
        order.update_from_dict(columns)
        if leftovers:
            order.details = {**(order.details or {}), **leftovers}
        order.status = new_status
        await order.save(using_db=conn)

        payload = _order_payload(order)
        payload["old_status"] = old_status.value
        payload["new_status"] = new_status.value
        await create_outbox_event(
            aggregate_type="order",
            aggregate_id=order.id,
            event_type=ORDER_STATUS_CHANGED,
            payload=payload,
            conn=conn,
        )

    log.info(f"Order {order_id} status {old_status.value} -> {new_status.value}")
    return order


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def generate_tracking_number() -> str:
    suffix = "".join(secrets.choice("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ") for _ in range(4))
    return f"TRK-{_base36(int(time.time() * 1000))}-{suffix}"


async def add_tracking_info(order_id: UUID, tracking_number: str, estimated_delivery: Optional[str]) -> Optional[Order]:
    return await update_order_status(order_id, OrderStatus.SHIPPED, {
        "tracking_number": tracking_number,
        "estimated_delivery": estimated_delivery,
        "shipped_at": timezone.now(),
    })


async def get_order_statistics(user_id: str, role: str) -> Dict[str, Any]:
    views = await get_orders_by_user(user_id, role)
    incoming, outgoing = views["incoming"], views["outgoing"]
    orders = incoming + outgoing

    def count(status: OrderStatus) -> int:
        return sum(1 for o in orders if o.status == status)

    return {
        "total": len(orders),
        "pending": count(OrderStatus.PENDING),
        "processing": count(OrderStatus.PROCESSING),
        "shipped": count(OrderStatus.SHIPPED),
        "delivered": count(OrderStatus.DELIVERED),
        "total_revenue": sum((o.total_amount or Decimal("0") for o in outgoing), Decimal("0")),
        "total_purchases": sum((o.total_amount or Decimal("0") for o in incoming), Decimal("0")),
    }
