import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from tortoise import timezone

from agrotrace.core.config import PROJECT_NAME, TRACE_VERIFY_BASE_URL
from agrotrace.models.catalog import Batch
from agrotrace.models.order import Role
from agrotrace.models.traceability import TraceEvent, TraceEventType

log = logging.getLogger("traceability_service")

# Event types each role may record
ROLE_PERMISSIONS = {
    Role.FARMER: {
        TraceEventType.CREATED, TraceEventType.HARVESTED, TraceEventType.QUALITY_CHECK,
        TraceEventType.PACKAGED, TraceEventType.SHIPPED, TraceEventType.CUSTOM,
    },
    Role.PROCESSOR: {
        TraceEventType.RECEIVED, TraceEventType.QUALITY_CHECK, TraceEventType.PROCESSED,
        TraceEventType.PACKAGED, TraceEventType.SHIPPED, TraceEventType.CUSTOM,
    },
    Role.DISTRIBUTOR: {
        TraceEventType.RECEIVED, TraceEventType.QUALITY_CHECK, TraceEventType.DISTRIBUTED,
        TraceEventType.PACKAGED, TraceEventType.SHIPPED, TraceEventType.SOLD, TraceEventType.CUSTOM,
    },
    Role.CONSUMER: {
        TraceEventType.RECEIVED, TraceEventType.DELIVERED, TraceEventType.FEEDBACK,
        TraceEventType.ISSUE_REPORTED, TraceEventType.CUSTOM,
    },
}

# Later entries win when working out a batch's current stage
STAGE_ORDER = (
    TraceEventType.CREATED,
    TraceEventType.HARVESTED,
    TraceEventType.PROCESSED,
    TraceEventType.DISTRIBUTED,
    TraceEventType.SOLD,
    TraceEventType.DELIVERED,
)


class TracePermissionError(ValueError):
    """The role may not record this event type."""


def can_record(role: Role, event_type: TraceEventType) -> bool:
    return TraceEventType(event_type) in ROLE_PERMISSIONS.get(Role(role), set())


async def add_trace_event(
    batch_id: str,
    event_type: TraceEventType,
    event_data: Dict[str, Any],
    user_id: str,
    user_role: Role,
    conn: Any = None,
) -> TraceEvent:
    """
    Appends an event to a batch's journey. Raises TracePermissionError when the
    role is not allowed to record this event type.
    """
    event_type = TraceEventType(event_type)
    user_role = Role(user_role)
    if not can_record(user_role, event_type):
        raise TracePermissionError(f"Role {user_role.value} is not authorized to add {event_type.value} events")

    # Name and description have their own columns
    details = {k: v for k, v in (event_data.get("details") or {}).items() if k not in ("user_name", "description")}
    event = await TraceEvent.create(
        batch_id=batch_id,
        event_type=event_type,
        user_id=user_id,
        user_role=user_role,
        user_name=event_data.get("user_name") or "Unknown User",
        location=event_data.get("location") or "",
        description=event_data.get("description") or "",
        details=details,
        images=list(event_data.get("images") or []),
        documents=list(event_data.get("documents") or []),
        using_db=conn,
    )
    log.info(f"Trace event {event_type.value} recorded for batch {batch_id} by {user_role.value} {user_id}")
    return event


async def get_batch_traceability(batch_id: str) -> List[TraceEvent]:
    """The batch's journey, oldest event first."""
    return await TraceEvent.filter(batch_id=batch_id).order_by("timestamp")


async def get_user_trace_events(user_id: str, user_role: Role) -> List[TraceEvent]:
    return await TraceEvent.filter(user_id=user_id, user_role=Role(user_role)).order_by("-timestamp")


async def verify_trace_event(event_id: UUID, verifier_id: str, verifier_role: Role) -> Optional[TraceEvent]:
    event = await TraceEvent.get_or_none(id=event_id)
    if not event:
        return None
    event.verified = True
    event.verified_by = verifier_id
    event.verified_by_role = Role(verifier_role)
    event.verified_at = timezone.now()
    await event.save(update_fields=["verified", "verified_by", "verified_by_role", "verified_at"])
    log.info(f"Trace event {event_id} verified by {verifier_id}")
    return event


def current_stage(events: List[TraceEvent]) -> str:
    recorded = {e.event_type for e in events}
    for stage in reversed(STAGE_ORDER):
        if stage in recorded:
            return stage.value
    return "unknown"


async def get_batch_history_summary(batch_id: str) -> Optional[Dict[str, Any]]:
    """Rolled-up view of a batch's journey; None when nothing has been recorded."""
    events = await get_batch_traceability(batch_id)
    if not events:
        return None

    roles = []
    for e in events:
        if e.user_role.value not in roles:
            roles.append(e.user_role.value)

    return {
        "batch_id": batch_id,
        "total_events": len(events),
        "last_updated": events[-1].timestamp,
        "current_stage": current_stage(events),
        "participating_roles": roles,
        "timeline": [
            {"event_type": e.event_type.value, "timestamp": e.timestamp, "role": e.user_role.value, "location": e.location}
            for e in events
        ],
        "quality_checks": sum(1 for e in events if e.event_type == TraceEventType.QUALITY_CHECK),
        "verified": sum(1 for e in events if e.verified),
        "issues": sum(1 for e in events if e.event_type == TraceEventType.ISSUE_REPORTED),
    }


async def generate_batch_qr_data(batch_id: str) -> Dict[str, Any]:
    """Payload encoded in a batch's QR label."""
    summary = await get_batch_history_summary(batch_id)
    return {
        "batch_id": batch_id,
        "platform": PROJECT_NAME,
        "created": timezone.now(),
        "verify_url": f"{TRACE_VERIFY_BASE_URL.rstrip('/')}/verify/{batch_id}",
        "summary": {
            "current_stage": summary["current_stage"],
            "total_events": summary["total_events"],
            "participating_roles": summary["participating_roles"],
            "last_updated": summary["last_updated"],
        } if summary else None,
    }


def created_event_data(batch: Batch, user_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "user_name": user_name or batch.farmer_name or "System",
        "description": f"Batch {batch.id} created",
        "location": batch.location or "Farm Location",
        "details": {
            "variety": batch.variety,
            "quantity": batch.quantity,
            "harvest_date": str(batch.harvest_date) if batch.harvest_date else None,
            "quality_notes": batch.quality_notes,
        },
    }


async def initialize_traceability_for_existing_batches() -> List[TraceEvent]:
    """Writes the 'created' event for every batch that has none yet."""
    traced = set(await TraceEvent.filter(event_type=TraceEventType.CREATED).values_list("batch_id", flat=True))
    created = []
    for batch in await Batch.all().order_by("created_at"):
        if batch.id in traced:
            continue
        event = await add_trace_event(
            batch.id, TraceEventType.CREATED, created_event_data(batch, "System"), batch.farmer_id, Role.FARMER
        )
        created.append(event)
    log.info(f"Traceability initialized: {len(created)} batch(es)")
    return created
