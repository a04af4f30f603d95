from enum import Enum
from typing import Optional

from app.schemas.base import DocumentModel


class NotificationType(str, Enum):
    like = "like"
    follow = "follow"
    comment = "comment"


NOTIFICATION_MESSAGES = {
    NotificationType.like: "оценил(а) ваш пост",
    NotificationType.follow: "подписался(ась) на вас",
    NotificationType.comment: "прокомментировал(а) ваш пост",
}


class NotificationCreate(DocumentModel):
    user_id: str
    from_user_id: str
    type: NotificationType
    post_id: Optional[str] = None
    message: Optional[str] = None


class NotificationUpdate(DocumentModel):
    is_read: bool


class Notification(DocumentModel):
    id: str
    user_id: str
    from_user_id: str
    # Снимок профиля автора на момент создания, не обновляется
    from_user_name: str
    from_user_avatar: str = ""
    type: NotificationType
    post_id: Optional[str] = None
    message: str
    is_read: bool = False
    created_at: str


class UnreadCount(DocumentModel):
    user_id: str
    unread: int
