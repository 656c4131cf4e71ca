import logging
from fastapi import APIRouter, HTTPException, Query, status
from agrotrace.core.config import DEFAULT_NOTIFICATION_LIMIT, NOTIFICATION_REFRESH_INTERVAL
from agrotrace.models.order import Role
from agrotrace.schemas.notification import (
    NotificationResponse,
    NotificationSettings,
    NotificationSettingsUpdate,
    NotificationStats,
    RefreshResponse,
    UnreadCountResponse,
)
from agrotrace.schemas.response import SuccessResponse, NOT_FOUND
from agrotrace.services import notification_service
from uuid import UUID

log = logging.getLogger("agrotrace.api.notifications")

router = APIRouter()


@router.get("/users/{user_id}", response_model=SuccessResponse)
async def list_notifications_endpoint(user_id: str, limit: int = Query(DEFAULT_NOTIFICATION_LIMIT, ge=1, le=500)):
    notifications = await notification_service.get_user_notifications(user_id, limit)
    return SuccessResponse(data=[NotificationResponse.model_validate(n).model_dump() for n in notifications])


@router.get("/users/{user_id}/unread-count", response_model=SuccessResponse)
async def unread_count_endpoint(user_id: str):
    unread = await notification_service.get_unread_count(user_id)
    return SuccessResponse(data=UnreadCountResponse(user_id=user_id, unread=unread).model_dump())


@router.get("/users/{user_id}/stats", response_model=SuccessResponse)
async def notification_stats_endpoint(user_id: str):
    stats = await notification_service.get_notification_stats(user_id)
    return SuccessResponse(data=NotificationStats(**stats).model_dump())


@router.post("/users/{user_id}/refresh", response_model=SuccessResponse)
async def refresh_endpoint(user_id: str, role: Role = Query(...)):
    """
    Client refresh: runs the low-stock / pending-order scan for the user and
    returns what it created together with the unread count.
    """
    created = await notification_service.check_and_create_auto_notifications(user_id, role)
    unread = await notification_service.get_unread_count(user_id)
    data = RefreshResponse(
        created=[NotificationResponse.model_validate(n) for n in created],
        unread=unread,
        refresh_interval=NOTIFICATION_REFRESH_INTERVAL,
    )
    return SuccessResponse(data=data.model_dump())


@router.post("/users/{user_id}/read-all", response_model=SuccessResponse)
async def mark_all_read_endpoint(user_id: str):
    updated = await notification_service.mark_all_notifications_read(user_id)
    return SuccessResponse(data={"updated": updated})


@router.get("/users/{user_id}/settings", response_model=SuccessResponse)
async def get_settings_endpoint(user_id: str):
    settings = await notification_service.get_notification_settings(user_id)
    return SuccessResponse(data=NotificationSettings(**settings).model_dump())


@router.patch("/users/{user_id}/settings", response_model=SuccessResponse)
async def update_settings_endpoint(user_id: str, payload: NotificationSettingsUpdate):
    settings = await notification_service.update_notification_settings(
        user_id, payload.model_dump(exclude_none=True)
    )
    return SuccessResponse(data=NotificationSettings(**settings).model_dump())


@router.post("/{notification_id}/read", response_model=SuccessResponse, responses=NOT_FOUND)
async def mark_read_endpoint(notification_id: UUID):
    if not await notification_service.mark_notification_read(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return SuccessResponse(data={"id": str(notification_id), "read": True})


@router.delete("/{notification_id}", response_model=SuccessResponse, responses=NOT_FOUND)
async def delete_notification_endpoint(notification_id: UUID):
    if not await notification_service.delete_notification(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    log.info(f"Notification {notification_id} deleted")
    return SuccessResponse(data={"id": str(notification_id), "deleted": True})
