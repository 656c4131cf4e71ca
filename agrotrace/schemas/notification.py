import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrotrace.models.notification import NotificationPriority, NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    type: NotificationType
    title: str
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    priority: NotificationPriority
    read: bool
    created_at: datetime


class UnreadCountResponse(BaseModel):
    user_id: str
    unread: int


class RefreshResponse(BaseModel):
    created: List[NotificationResponse]
    unread: int
    refresh_interval: int = Field(..., description="Seconds until the client should refresh again.")


class NotificationStats(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int]
    by_priority: Dict[str, int]


class NotificationSettings(BaseModel):
    order_updates: bool = True
    inventory_alerts: bool = True
    delivery_updates: bool = True
    payment_confirmations: bool = True
    email_notifications: bool = False
    push_notifications: bool = True


class NotificationSettingsUpdate(BaseModel):
    """Partial update; omitted flags keep their current value."""
    order_updates: Optional[bool] = None
    inventory_alerts: Optional[bool] = None
    delivery_updates: Optional[bool] = None
    payment_confirmations: Optional[bool] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
