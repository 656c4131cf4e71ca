from enum import Enum
from tortoise import fields, models
import uuid


class Role(str, Enum):
    FARMER = "farmer"
    PROCESSOR = "processor"
    DISTRIBUTOR = "distributor"
    CONSUMER = "consumer"


class OrderType(str, Enum):
    PROCESSING = "processing"  # Farmer -> Processor
    DISTRIBUTION = "distribution"  # Processor -> Distributor
    CONSUMER = "consumer"  # Distributor -> Consumer


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"  # Consumer orders start here (paid up front)
    PROCESSING = "processing"
    READY = "ready"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Statuses whose sale effect is applied to the seller's inventory
SALE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.DELIVERED)


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    type = fields.CharEnumField(OrderType)

    # Only the pair of participants relevant to `type` is populated
    farmer_id = fields.CharField(max_length=64, null=True)
    processor_id = fields.CharField(max_length=64, null=True)
    distributor_id = fields.CharField(max_length=64, null=True)
    consumer_id = fields.CharField(max_length=64, null=True)

    batch_id = fields.CharField(max_length=64, null=True)  # processing orders
    batch_name = fields.CharField(max_length=255, null=True)
    product_id = fields.CharField(max_length=64, null=True)  # distribution / consumer orders
    product_name = fields.CharField(max_length=255, null=True)

    quantity = fields.IntField(default=0)
    unit = fields.CharField(max_length=32, default="units")
    unit_price = fields.DecimalField(max_digits=12, decimal_places=2, null=True)
    total_amount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)

    delivery_address = fields.TextField(null=True)
    contact_phone = fields.CharField(max_length=32, null=True)
    customer_name = fields.CharField(max_length=255, null=True)
    supplier_name = fields.CharField(max_length=255, null=True)
    special_instructions = fields.TextField(null=True)

    payment_reference = fields.CharField(max_length=128, null=True)
    tracking_number = fields.CharField(max_length=64, null=True)
    estimated_delivery = fields.CharField(max_length=64, null=True)
    shipped_at = fields.DatetimeField(null=True)

    # Extra data merged in by status updates that has no dedicated column
    details = fields.JSONField(default=dict)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("type", "farmer_id"),
            ("type", "processor_id"),
            ("type", "distributor_id"),
            ("type", "consumer_id"),
            ("status",),
            ("created_at",),
        ]

    @property
    def item_id(self):
        """Inventory item referenced by this order."""
        return self.batch_id if self.type == OrderType.PROCESSING else self.product_id

    @property
    def seller_id(self):
        if self.type == OrderType.PROCESSING:
            return self.farmer_id
        if self.type == OrderType.DISTRIBUTION:
            return self.processor_id
        return self.distributor_id

    @property
    def buyer_id(self):
        if self.type == OrderType.PROCESSING:
            return self.processor_id
        if self.type == OrderType.DISTRIBUTION:
            return self.distributor_id
        return self.consumer_id
