import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrotrace.models.order import Role
from agrotrace.models.traceability import TraceEventType


class TraceEventCreate(BaseModel):
    """A step in the batch's journey, recorded by the acting participant."""
    event_type: TraceEventType
    user_id: str
    user_role: Role
    user_name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    images: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)


class TraceEventVerify(BaseModel):
    verifier_id: str
    verifier_role: Role


class TraceEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    batch_id: str
    event_type: TraceEventType
    user_id: str
    user_role: Role
    user_name: str
    location: str
    description: str
    details: Dict[str, Any] = Field(default_factory=dict)
    images: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    verified: bool
    verified_by: Optional[str] = None
    verified_by_role: Optional[Role] = None
    verified_at: Optional[datetime] = None
    timestamp: datetime


class TimelineEntry(BaseModel):
    event_type: TraceEventType
    timestamp: datetime
    role: Role
    location: str


class BatchHistorySummary(BaseModel):
    batch_id: str
    total_events: int
    last_updated: datetime
    current_stage: str
    participating_roles: List[Role]
    timeline: List[TimelineEntry]
    quality_checks: int
    verified: int
    issues: int


class QRSummary(BaseModel):
    current_stage: str
    total_events: int
    participating_roles: List[Role]
    last_updated: datetime


class BatchQRData(BaseModel):
    batch_id: str
    platform: str
    created: datetime
    verify_url: str
    summary: Optional[QRSummary] = None
