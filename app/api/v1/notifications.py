from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query

from app.core.dependencies import get_current_user, get_notification_service
from app.schemas.notification import Notification, UnreadCount
from app.schemas.user import User
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("/", response_model=List[Notification])
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Уведомления текущего пользователя, новые сверху"""
    return await notifications.list_notifications(current_user.id, limit)


@router.get("/unread", response_model=List[Notification])
async def list_unread(
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.list_unread(current_user.id)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.unread_count(current_user.id)


@router.post("/read-all")
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return {"updated": await notifications.mark_all_as_read(current_user.id)}


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_as_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.mark_as_read(notification_id, current_user.id)


@router.patch("/{notification_id}", response_model=Notification)
async def update_notification(
    notification_id: str,
    patch: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Изменить можно только isRead; снимок автора неизменяем"""
    return await notifications.update_notification(notification_id, patch, current_user.id)


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    await notifications.delete_notification(notification_id, current_user.id)
