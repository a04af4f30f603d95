import logging
from typing import Any, List, Optional

from app.core.config import settings
from app.core.errors import MuscleGramError
from app.schemas.notification import Notification, NotificationType, UnreadCount
from app.services.base_service import BaseService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):

    async def notify(
        self,
        notification_type: NotificationType,
        recipient_id: str,
        actor_id: str,
        post_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Notification:
        """Создать уведомление со снимком имени и аватара автора действия."""
        record = await self.validators.notifications.validate_create(
            {
                "userId": recipient_id,
                "fromUserId": actor_id,
                "type": notification_type,
                "postId": post_id,
                "message": message,
            },
            actor_id,
        )
        document = await self.store.create(self.collections.notifications, record.to_document(), record.id)
        return self.to_model(Notification, document)

    async def notify_safely(
        self,
        notification_type: NotificationType,
        recipient_id: str,
        actor_id: str,
        post_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """Уведомление как побочный эффект лайка/комментария/подписки.

        Ошибка доставки логируется и не отменяет основное действие.
        """
        if recipient_id == actor_id:
            return None
        try:
            return await self.notify(notification_type, recipient_id, actor_id, post_id)
        except MuscleGramError as e:
            logger.warning(
                f"Не удалось создать уведомление {notification_type.value} "
                f"для {recipient_id} от {actor_id}: {e.message}"
            )
            return None

    async def list_notifications(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
        documents = await self.store.find(
            self.collections.notifications,
            {"userId": user_id},
            order_by="createdAt",
            descending=True,
            limit=limit or settings.NOTIFICATIONS_PAGE_SIZE,
        )
        return self.to_models(Notification, documents)

    async def list_unread(self, user_id: str) -> List[Notification]:
        documents = await self.store.find(
            self.collections.notifications,
            {"userId": user_id, "isRead": False},
            order_by="createdAt",
            descending=True,
        )
        return self.to_models(Notification, documents)

    async def unread_count(self, user_id: str) -> UnreadCount:
        count = await self.store.count(self.collections.notifications, {"userId": user_id, "isRead": False})
        return UnreadCount(user_id=user_id, unread=count)

    async def update_notification(self, notification_id: str, patch: Any, actor_id: str) -> Notification:
        """Изменить уведомление получателем; допускается только isRead."""
        async def mutate(current):
            record = await self.validators.notifications.validate_update(
                notification_id, patch, actor_id, current=current
            )
            return self.changes(current, record)

        document = await self.writer.update_with_retry(self.collections.notifications, notification_id, mutate)
        return self.to_model(Notification, document)

    async def mark_as_read(self, notification_id: str, actor_id: str) -> Notification:
        return await self.update_notification(notification_id, {"isRead": True}, actor_id)

    async def mark_all_as_read(self, user_id: str) -> int:
        unread = await self.store.find(self.collections.notifications, {"userId": user_id, "isRead": False})
        for document in unread:
            await self.mark_as_read(document["id"], user_id)
        return len(unread)

    async def delete_notification(self, notification_id: str, actor_id: str) -> None:
        await self.validators.notifications.authorize_delete(notification_id, actor_id)
        await self.store.delete(self.collections.notifications, notification_id)
