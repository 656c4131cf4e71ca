from enum import Enum
from tortoise import fields, models
import uuid

from agrotrace.models.order import Role


class TraceEventType(str, Enum):
    CREATED = "created"
    HARVESTED = "harvested"
    QUALITY_CHECK = "quality_check"
    PROCESSED = "processed"
    PACKAGED = "packaged"
    SHIPPED = "shipped"
    RECEIVED = "received"
    DISTRIBUTED = "distributed"
    SOLD = "sold"
    DELIVERED = "delivered"
    FEEDBACK = "feedback"
    ISSUE_REPORTED = "issue_reported"
    CUSTOM = "custom"


class TraceEvent(models.Model):
    """One step in a batch's farm-to-fork journey, recorded by a supply-chain participant."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    batch_id = fields.CharField(max_length=64)
    event_type = fields.CharEnumField(TraceEventType)
    user_id = fields.CharField(max_length=64)
    user_role = fields.CharEnumField(Role)
    user_name = fields.CharField(max_length=255, default="Unknown User")
    location = fields.CharField(max_length=255, default="")
    description = fields.TextField(default="")
    details = fields.JSONField(default=dict)
    images = fields.JSONField(default=list)
    documents = fields.JSONField(default=list)

    # Set when another participant vouches for the event
    verified = fields.BooleanField(default=False)
    verified_by = fields.CharField(max_length=64, null=True)
    verified_by_role = fields.CharEnumField(Role, null=True)
    verified_at = fields.DatetimeField(null=True)

    timestamp = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "trace_events"
        indexes = [
            ("batch_id", "timestamp"),
            ("user_id", "user_role"),
        ]
