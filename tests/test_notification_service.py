import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from tortoise import timezone

from agrotrace.models.inventory import ItemType
from agrotrace.models.notification import Notification, NotificationPriority, NotificationType
from agrotrace.models.order import OrderStatus, Role
from agrotrace.schemas.notification import NotificationResponse
from agrotrace.services import notification_service as ns
from agrotrace.services.inventory_service import initialize_item, update_stock_on_sale
from agrotrace.services.order_service import create_distribution_order, create_processing_order, update_order_status

pytestmark = pytest.mark.usefixtures("db")


async def _backdate(notification: Notification, hours: int):
    await Notification.filter(id=notification.id).update(created_at=timezone.now() - timedelta(hours=hours))


@pytest.mark.asyncio
async def test_priority_defaults_to_normal():
    n = await ns.create_notification("U1", NotificationType.SYSTEM, "Hello", "Welcome aboard")

    assert n.priority == NotificationPriority.NORMAL
    assert n.metadata == {"priority": "normal"}
    assert n.read is False


@pytest.mark.asyncio
async def test_listing_is_newest_first_and_limited_after_sorting():
    first = await ns.create_notification("U1", NotificationType.SYSTEM, "1", "oldest")
    second = await ns.create_notification("U1", NotificationType.SYSTEM, "2", "middle")
    third = await ns.create_notification("U1", NotificationType.SYSTEM, "3", "newest")
    await ns.create_notification("U2", NotificationType.SYSTEM, "x", "someone else")
    await _backdate(first, 3)
    await _backdate(second, 2)
    await _backdate(third, 1)

    listed = await ns.get_user_notifications("U1", limit=2)

    assert [n.id for n in listed] == [third.id, second.id]


@pytest.mark.asyncio
async def test_read_and_delete():
    a = await ns.create_notification("U1", NotificationType.SYSTEM, "a", "a")
    b = await ns.create_notification("U1", NotificationType.SYSTEM, "b", "b")
    await ns.create_notification("U1", NotificationType.SYSTEM, "c", "c")
    assert await ns.get_unread_count("U1") == 3

    assert await ns.mark_notification_read(a.id) is True
    assert await ns.mark_notification_read(uuid4()) is False
    assert await ns.get_unread_count("U1") == 2

    assert await ns.mark_all_notifications_read("U1") == 2
    assert await ns.get_unread_count("U1") == 0

    assert await ns.delete_notification(b.id) is True
    assert await ns.delete_notification(b.id) is False
    assert len(await ns.get_user_notifications("U1")) == 2


@pytest.mark.asyncio
async def test_bulk_notifications_reach_every_recipient():
    created = await ns.create_bulk_notifications(
        ["U1", "U2", "U3"], NotificationType.SYSTEM, "Maintenance", "Down at noon", {"priority": "low"}
    )

    assert sorted(n.user_id for n in created) == ["U1", "U2", "U3"]
    assert all(n.priority == NotificationPriority.LOW for n in created)


@pytest.mark.asyncio
async def test_low_stock_alert_is_urgent_when_out_of_stock():
    item = await initialize_item("BTH-0", ItemType.BATCH, 0, "F1", Role.FARMER)
    n = await ns.notify_low_stock(item, "F1")
    assert n.priority == NotificationPriority.URGENT
    assert "out of stock" in n.message

    item = await initialize_item("BTH-5", ItemType.BATCH, 5, "F1", Role.FARMER)
    n = await ns.notify_low_stock(item, "F1")
    assert n.priority == NotificationPriority.HIGH
    assert "5 units remaining" in n.message


@pytest.mark.asyncio
async def test_low_stock_alert_not_repeated_within_a_day():
    item = await initialize_item("BTH-1", ItemType.BATCH, 4, "F1", Role.FARMER)

    first = await ns.notify_low_stock_if_due(item)
    assert first is not None
    assert first.dedup_key == "low_stock:BTH-1:F1"
    assert await ns.notify_low_stock_if_due(item) is None

    await _backdate(first, 25)
    again = await ns.notify_low_stock_if_due(item)
    assert again is not None
    assert await Notification.filter(user_id="F1", type=NotificationType.LOW_STOCK).count() == 2


@pytest.mark.asyncio
async def test_low_stock_dedup_is_per_item():
    a = await initialize_item("BTH-A", ItemType.BATCH, 4, "F1", Role.FARMER)
    b = await initialize_item("BTH-B", ItemType.BATCH, 2, "F1", Role.FARMER)

    assert await ns.notify_low_stock_if_due(a) is not None
    assert await ns.notify_low_stock_if_due(b) is not None


@pytest.mark.asyncio
async def test_auto_notifications_scan_is_idempotent():
    await initialize_item("BTH-1", ItemType.BATCH, 100, "F1", Role.FARMER)
    await update_stock_on_sale("BTH-1", 95, "P1", "R1")
    await initialize_item("PRD-1", ItemType.PRODUCT, 3, "P1", Role.PROCESSOR)
    order = await create_processing_order("F1", "P1", {"id": "BTH-1", "quantity": 5}, Decimal("50"), {})

    farmer_alerts = await ns.check_and_create_auto_notifications("F1", "farmer")
    assert [n.type for n in farmer_alerts] == [NotificationType.LOW_STOCK]

    processor_alerts = await ns.check_and_create_auto_notifications("P1", "processor")
    assert sorted(n.type.value for n in processor_alerts) == ["low_stock", "new_order"]
    new_order = next(n for n in processor_alerts if n.type == NotificationType.NEW_ORDER)
    assert new_order.metadata["orderId"] == str(order.id)
    assert new_order.priority == NotificationPriority.HIGH

    assert await ns.check_and_create_auto_notifications("F1", "farmer") == []
    assert await ns.check_and_create_auto_notifications("P1", "processor") == []


@pytest.mark.asyncio
async def test_new_order_alert_only_for_pending_orders():
    order = await create_distribution_order("P1", "D1", {"id": "PRD-1", "quantity": 2}, Decimal("20"), {})
    await update_order_status(order.id, OrderStatus.CONFIRMED)

    assert await ns.check_and_create_auto_notifications("D1", "distributor") == []


@pytest.mark.asyncio
async def test_auto_notifications_reject_unknown_role():
    with pytest.raises(ValueError):
        await ns.check_and_create_auto_notifications("U1", "auditor")


@pytest.mark.asyncio
async def test_status_change_notification_priority():
    order = await create_processing_order("F1", "P1", {"id": "BTH-1", "quantity": 5}, Decimal("50"), {})

    shipped = await ns.notify_order_status_change(order, OrderStatus.SHIPPED, "P1")
    cancelled = await ns.notify_order_status_change(order, OrderStatus.CANCELLED, "P1")

    assert shipped.priority == NotificationPriority.NORMAL
    assert "has been shipped" in shipped.message
    assert cancelled.priority == NotificationPriority.HIGH
    assert cancelled.metadata["newStatus"] == "cancelled"


@pytest.mark.asyncio
async def test_notification_stats():
    await ns.create_notification("U1", NotificationType.SYSTEM, "a", "a")
    await ns.create_notification("U1", NotificationType.LOW_STOCK, "b", "b", {"priority": "urgent"})
    n = await ns.create_notification("U1", NotificationType.LOW_STOCK, "c", "c", {"priority": "high"})
    await ns.mark_notification_read(n.id)

    stats = await ns.get_notification_stats("U1")

    assert stats["total"] == 3
    assert stats["unread"] == 2
    assert stats["by_type"]["low_stock"] == 2
    assert stats["by_type"]["system"] == 1
    assert stats["by_type"]["new_order"] == 0
    assert stats["by_priority"] == {"urgent": 1, "high": 1, "normal": 1, "low": 0}


@pytest.mark.asyncio
async def test_settings_defaults_and_shallow_merge():
    assert await ns.get_notification_settings("U1") == {
        "order_updates": True,
        "inventory_alerts": True,
        "delivery_updates": True,
        "payment_confirmations": True,
        "email_notifications": False,
        "push_notifications": True,
    }

    updated = await ns.update_notification_settings("U1", {"email_notifications": True, "unknown_flag": False})
    assert updated["email_notifications"] is True
    assert "unknown_flag" not in updated

    updated = await ns.update_notification_settings("U1", {"push_notifications": False, "order_updates": None})
    assert updated["email_notifications"] is True
    assert updated["push_notifications"] is False
    assert updated["order_updates"] is True

    assert await ns.get_notification_settings("U1") == updated


@pytest.mark.asyncio
async def test_notification_survives_json_round_trip():
    created = await ns.create_notification("U1", NotificationType.DELIVERY_UPDATE, "On its way", "Left the hub", {
        "orderId": str(uuid4()),
        "route": {"legs": [{"hub": "Ibadan", "eta": "2026-11-01"}, {"hub": "Lagos", "eta": None}]},
        "priority": "high",
    })
    stored = await Notification.get(id=created.id)

    dumped = NotificationResponse.model_validate(stored)
    restored = NotificationResponse.model_validate_json(dumped.model_dump_json())

    assert restored == dumped
    assert restored.priority == NotificationPriority.HIGH
    assert restored.metadata["route"]["legs"][1] == {"hub": "Lagos", "eta": None}
