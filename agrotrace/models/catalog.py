from enum import Enum
from tortoise import fields, models
import uuid


def new_batch_id() -> str:
    return "BTH-" + uuid.uuid4().hex[:12].upper()


def new_product_id() -> str:
    return "PRD-" + uuid.uuid4().hex[:12].upper()


class BatchStatus(str, Enum):
    HARVESTED = "harvested"
    PROCESSING = "processing"
    PROCESSED = "processed"
    DISTRIBUTED = "distributed"
    SOLD = "sold"


class Batch(models.Model):
    """A farmer-created lot of harvested produce; the root traceable unit."""
    id = fields.CharField(max_length=64, primary_key=True, default=new_batch_id)
    farmer_id = fields.CharField(max_length=64)
    farmer_name = fields.CharField(max_length=255, null=True)
    crop_type = fields.CharField(max_length=128, default="plantain")
    variety = fields.CharField(max_length=128, null=True)
    quantity = fields.IntField(default=0)
    unit = fields.CharField(max_length=32, default="kg")
    harvest_date = fields.DateField(null=True)
    location = fields.CharField(max_length=255, null=True)
    quality_notes = fields.TextField(null=True)
    certifications = fields.JSONField(default=list)
    status = fields.CharEnumField(BatchStatus, default=BatchStatus.HARVESTED)

    # On-chain mapping, filled only after a successful recording
    chain_batch_id = fields.CharField(max_length=128, null=True)
    chain_tx_hash = fields.CharField(max_length=128, null=True)
    chain_explorer_url = fields.CharField(max_length=255, null=True)
    chain_recorded_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "batches"
        indexes = [("farmer_id",)]


class Product(models.Model):
    """A processed product, owned by a processor or (once stocked) a distributor."""
    id = fields.CharField(max_length=64, primary_key=True, default=new_product_id)
    name = fields.CharField(max_length=255)
    processor_id = fields.CharField(max_length=64, null=True)
    processor_name = fields.CharField(max_length=255, null=True)
    distributor_id = fields.CharField(max_length=64, null=True)
    distributor_name = fields.CharField(max_length=255, null=True)
    source_batch_id = fields.CharField(max_length=64, null=True)
    quantity = fields.IntField(default=0)
    unit = fields.CharField(max_length=32, default="units")
    price = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "products"
        indexes = [("processor_id",), ("distributor_id",)]
