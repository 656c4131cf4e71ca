from tortoise import fields, models
import uuid


class ProcessedEvent(models.Model):
    """
    Idempotency markers. A row means the keyed side effect has already been
    applied: "<consumer>:<outbox event id>" for consumers, "order-sale:<order id>"
    for the sale effect of a confirmed order.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    event_id = fields.CharField(max_length=128, unique=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "processed_events"
