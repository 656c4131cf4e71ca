import logging
from typing import Any, Callable, Dict, List, Optional

from tortoise import timezone
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from agrotrace.core.config import LOW_STOCK_THRESHOLD
from agrotrace.events.outbox_utility import create_outbox_event, LOW_STOCK_ALERT
from agrotrace.models.catalog import Batch, Product
from agrotrace.models.inventory import InventoryItem, ItemType, StockAction
from agrotrace.models.order import Order, Role, SALE_STATUSES
from agrotrace.models.processed_event import ProcessedEvent

log = logging.getLogger("inventory_service")

# Stock movements that change current_quantity and may leave an item low
_QUANTITY_ACTIONS = (StockAction.INITIALIZED.value, StockAction.ADDED.value, StockAction.SALE.value)


def _history_entry(action: StockAction, quantity: int, note: str, **extra) -> Dict[str, Any]:
    entry = {
        "action": action.value,
        "quantity": quantity,
        "timestamp": timezone.now().isoformat(),
        "note": note,
    }
    entry.update(extra)
    return entry


async def _emit_low_stock(item: InventoryItem, conn: Any):
    log.info(f"Low stock for item {item.item_id} (owner {item.owner_id}): {item.current_quantity} units")
    await create_outbox_event(
        aggregate_type="inventory",
        aggregate_id=item.item_id,
        event_type=LOW_STOCK_ALERT,
        payload={
            "item_id": item.item_id,
            "owner_id": item.owner_id,
            "owner_role": item.owner_role.value,
            "current_quantity": item.current_quantity,
            "threshold": LOW_STOCK_THRESHOLD,
        },
        conn=conn,
    )


def _locked_item(item_id: str, owner_id: Optional[str], conn: Any):
    """
    Row-locked lookup. With an owner the composite (item_id, owner_id) key is used;
    without one, the earliest tracked record for the item id.
    """
    query = InventoryItem.filter(item_id=item_id)
    if owner_id is not None:
        query = query.filter(owner_id=owner_id)
    return query.order_by("created_at").using_db(conn).select_for_update().first()


async def _apply(
    conn: Any,
    item_id: str,
    owner_id: Optional[str],
    change: Callable[[InventoryItem], Dict[str, Any]],
) -> Optional[InventoryItem]:
    """Applies one stock movement: mutate, append history, recompute the low-stock flag."""
    item = await _locked_item(item_id, owner_id, conn)
    if not item:
        return None

    entry = change(item)
    item.low_stock_alert = item.current_quantity <= LOW_STOCK_THRESHOLD
    item.stock_history = [*item.stock_history, entry]
    await item.save(using_db=conn)

    if entry["action"] in _QUANTITY_ACTIONS and item.low_stock_alert:
        await _emit_low_stock(item, conn)
    return item


async def _mutate(item_id: str, owner_id: Optional[str], change) -> Optional[InventoryItem]:
    async with in_transaction() as conn:
        return await _apply(conn, item_id, owner_id, change)


def _sale(quantity_sold: int, buyer_id: Optional[str], sale_reference: Optional[str]):
    def change(item: InventoryItem):
        item.current_quantity = max(0, item.current_quantity - quantity_sold)
        # Sold count records what was requested, even beyond available stock
        item.sold_quantity += quantity_sold
        return _history_entry(
            StockAction.SALE, -quantity_sold,
            f"Sold to {buyer_id}, Ref: {sale_reference}",
            new_quantity=item.current_quantity,
        )
    return change


# ----------- Stock movements -----------

async def initialize_item(
    item_id: str,
    item_type: ItemType,
    initial_quantity: int,
    owner_id: str,
    owner_role: Role,
) -> InventoryItem:
    """
    Starts tracking (item_id, owner_id). An existing record for the same key is
    replaced, which also resets its stock history.
    """
    quantity = int(initial_quantity)
    async with in_transaction() as conn:
        await InventoryItem.filter(item_id=item_id, owner_id=owner_id).using_db(conn).delete()
        item = await InventoryItem.create(
            item_id=item_id,
            item_type=ItemType(item_type),
            owner_id=owner_id,
            owner_role=Role(owner_role),
            initial_quantity=quantity,
            current_quantity=quantity,
            reserved_quantity=0,
            sold_quantity=0,
            low_stock_alert=quantity <= LOW_STOCK_THRESHOLD,
            stock_history=[_history_entry(StockAction.INITIALIZED, quantity, "Initial stock entry")],
            using_db=conn,
        )
        if item.low_stock_alert:
            await _emit_low_stock(item, conn)
    return item


async def add_stock(
    item_id: str, quantity: int, reason: str = "restocked", owner_id: Optional[str] = None
) -> Optional[InventoryItem]:
    """New harvest, production run, manual restock."""
    def change(item: InventoryItem):
        item.current_quantity += quantity
        return _history_entry(StockAction.ADDED, quantity, reason, new_quantity=item.current_quantity)

    return await _mutate(item_id, owner_id, change)


async def update_stock_on_sale(
    item_id: str,
    quantity_sold: int,
    buyer_id: Optional[str],
    sale_reference: Optional[str],
    owner_id: Optional[str] = None,
) -> Optional[InventoryItem]:
    return await _mutate(item_id, owner_id, _sale(quantity_sold, buyer_id, sale_reference))


async def reserve_stock(
    item_id: str, quantity: int, order_id: str, owner_id: Optional[str] = None
) -> Optional[InventoryItem]:
    """Holds stock for a pending order. Reservations are not capped by current stock."""
    def change(item: InventoryItem):
        item.reserved_quantity += quantity
        return _history_entry(
            StockAction.RESERVED, quantity, f"Reserved for order {order_id}",
            new_reserved_quantity=item.reserved_quantity, order_id=str(order_id),
        )

    return await _mutate(item_id, owner_id, change)


async def release_reserved_stock(
    item_id: str, quantity: int, order_id: str, owner_id: Optional[str] = None
) -> Optional[InventoryItem]:
    def change(item: InventoryItem):
        item.reserved_quantity = max(0, item.reserved_quantity - quantity)
        return _history_entry(
            StockAction.UNRESERVED, -quantity, f"Released from cancelled order {order_id}",
            new_reserved_quantity=item.reserved_quantity, order_id=str(order_id),
        )

    return await _mutate(item_id, owner_id, change)


def outstanding_reservation(item: InventoryItem, order_id: str) -> int:
    """Quantity still held for an order, from the reserve/release history."""
    held = 0
    for entry in item.stock_history:
        if entry.get("order_id") != str(order_id):
            continue
        if entry["action"] in (StockAction.RESERVED.value, StockAction.UNRESERVED.value):
            held += entry["quantity"]
    return max(0, held)


async def release_order_reservations(order: Order) -> Optional[InventoryItem]:
    """Releases whatever the seller still holds for a cancelled order."""
    if not order.item_id or not order.seller_id:
        return None
    item = await InventoryItem.get_or_none(item_id=order.item_id, owner_id=order.seller_id)
    if not item:
        return None
    held = outstanding_reservation(item, str(order.id))
    if held == 0:
        return None
    return await release_reserved_stock(order.item_id, held, str(order.id), owner_id=order.seller_id)


# ----------- Read views -----------

async def get_user_inventory(owner_id: str, owner_role: Role) -> List[InventoryItem]:
    return await InventoryItem.filter(owner_id=owner_id, owner_role=Role(owner_role)).order_by("created_at")


async def get_low_stock_items(owner_id: str, owner_role: Role) -> List[InventoryItem]:
    return await InventoryItem.filter(
        Q(low_stock_alert=True) | Q(current_quantity__lte=LOW_STOCK_THRESHOLD),
        owner_id=owner_id,
        owner_role=Role(owner_role),
    ).order_by("created_at")


async def get_inventory_stats(owner_id: str, owner_role: Role) -> Dict[str, int]:
    items = await get_user_inventory(owner_id, owner_role)
    return {
        "total_items": len(items),
        "total_current_stock": sum(i.current_quantity for i in items),
        "total_sold": sum(i.sold_quantity for i in items),
        "total_reserved": sum(i.reserved_quantity for i in items),
        "low_stock_items": sum(1 for i in items if i.low_stock_alert),
        "out_of_stock_items": sum(1 for i in items if i.current_quantity == 0),
        "total_value": 0,  # Needs product prices
    }


async def get_available_quantity(item_id: str, owner_id: Optional[str] = None) -> int:
    """current - reserved, floored at 0; 0 for untracked items."""
    query = InventoryItem.filter(item_id=item_id)
    if owner_id is not None:
        query = query.filter(owner_id=owner_id)
    item = await query.order_by("created_at").first()
    if not item:
        return 0
    return item.available_quantity


# ----------- Reconciliation -----------

async def sync_inventory_with_existing_items() -> List[InventoryItem]:
    """Starts tracking every batch and product that has no inventory record yet."""
    tracked = set(await InventoryItem.all().values_list("item_id", "owner_id"))
    created = []

    for batch in await Batch.all().order_by("created_at"):
        if (batch.id, batch.farmer_id) in tracked:
            continue
        item = await initialize_item(batch.id, ItemType.BATCH, batch.quantity or 0, batch.farmer_id, Role.FARMER)
        tracked.add((item.item_id, item.owner_id))
        created.append(item)

    for product in await Product.all().order_by("created_at"):
        if (product.id, product.processor_id) in tracked or (product.id, product.distributor_id) in tracked:
            continue
        owner_id = product.processor_id or product.distributor_id
        if not owner_id:
            log.warning(f"Product {product.id} has no owner, skipping inventory sync")
            continue
        owner_role = Role.PROCESSOR if product.processor_id else Role.DISTRIBUTOR
        item = await initialize_item(product.id, ItemType.PRODUCT, product.quantity or 0, owner_id, owner_role)
        tracked.add((item.item_id, item.owner_id))
        created.append(item)

    log.info(f"Inventory sync completed: {len(created)} new records")
    return created


def _sale_marker(order: Order) -> str:
    return f"order-sale:{order.id}"


async def apply_order_sale(order: Order) -> Optional[InventoryItem]:
    """
    Deducts a confirmed/delivered order from the seller's stock, at most once per
    order. Returns None when already applied or when the seller does not track the item.
    """
    if order.status not in SALE_STATUSES or not order.item_id:
        return None

    marker = _sale_marker(order)
    async with in_transaction() as conn:
        if await ProcessedEvent.filter(event_id=marker).using_db(conn).exists():
            return None
        item = await _apply(
            conn, order.item_id, order.seller_id,
            _sale(order.quantity, order.buyer_id, str(order.id)),
        )
        if item is None:
            log.warning(f"Order {order.id}: seller {order.seller_id} does not track item {order.item_id}")
            return None
        await ProcessedEvent.create(event_id=marker, using_db=conn)
    return item


async def sync_inventory_with_orders() -> List[InventoryItem]:
    """Replays sale effects of confirmed/delivered orders. Safe to run repeatedly."""
    orders = await Order.filter(status__in=list(SALE_STATUSES)).order_by("created_at")
    updated = []
    for order in orders:
        item = await apply_order_sale(order)
        if item:
            updated.append(item)
    log.info(f"Order sync applied {len(updated)} sale(s) out of {len(orders)} eligible orders")
    return updated
