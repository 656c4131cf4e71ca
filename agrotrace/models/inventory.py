from enum import Enum
from tortoise import fields, models
import uuid

from agrotrace.models.order import Role


class ItemType(str, Enum):
    BATCH = "batch"
    PRODUCT = "product"


class StockAction(str, Enum):
    INITIALIZED = "initialized"
    ADDED = "added"
    SALE = "sale"
    RESERVED = "reserved"
    UNRESERVED = "unreserved"


class InventoryItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    item_id = fields.CharField(max_length=64)  # Batch or product id
    item_type = fields.CharEnumField(ItemType)
    owner_id = fields.CharField(max_length=64)
    owner_role = fields.CharEnumField(Role)

    initial_quantity = fields.IntField(default=0)
    current_quantity = fields.IntField(default=0)
    reserved_quantity = fields.IntField(default=0)  # Allocated to pending orders
    sold_quantity = fields.IntField(default=0)
    low_stock_alert = fields.BooleanField(default=False)
    stock_history = fields.JSONField(default=list)  # Append-only log of stock movements

    created_at = fields.DatetimeField(auto_now_add=True)
    last_updated = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "inventory_tracking"
        unique_together = (("item_id", "owner_id"),)
        indexes = [
            ("owner_id", "owner_role"),  # Per-user inventory views
            ("item_id",),
        ]

    @property
    def available_quantity(self) -> int:
        return max(0, self.current_quantity - self.reserved_quantity)
