import logging
from typing import Any, Dict, List, Optional

from app.core.errors import ConflictError
from app.schemas.user import User
from app.services.base_service import BaseService

logger = logging.getLogger(__name__)


class UserService(BaseService):

    async def create_user(self, data: Any, actor_id: str) -> User:
        """Создать профиль; id профиля: идентификатор из токена."""
        record = await self.validators.users.validate_create(data, actor_id)
        document = record.to_document()
        created = await self.writer.create_unique(
            self.collections.users,
            document,
            self.validators.users.unique_keys(document),
            "Имя пользователя или email уже заняты",
            doc_id=record.id,
        )
        logger.info(f"Создан пользователь {record.id} (@{record.username})")
        return self.to_model(User, created)

    async def get_user(self, user_id: str) -> User:
        return self.to_model(User, await self.store.require_user(user_id))

    async def update_user(self, user_id: str, patch: Any, actor_id: str) -> User:
        current = await self.store.require_user(user_id)
        record = await self.validators.users.validate_update(user_id, patch, actor_id, current=current)
        changes = self.changes(current, record)

        unique_keys = [
            key for key in self.validators.users.unique_keys(record.to_document())
            if any(field in changes for field in key)
        ]
        updated = await self.writer.update_unique(
            self.collections.users,
            current,
            changes,
            unique_keys,
            "Имя пользователя или email уже заняты",
        )
        return self.to_model(User, updated)

    async def list_users(self, limit: int = 50) -> List[User]:
        documents = await self.store.find(self.collections.users, limit=limit)
        return self.to_models(User, documents)

    async def search_users(self, query: str, exclude_id: Optional[str] = None, limit: int = 50) -> List[User]:
        """Поиск по подстроке в displayName или username без учёта регистра."""
        needle = query.strip().lower()
        documents = await self.store.find(self.collections.users)
        users = []
        for document in documents:
            if document["id"] == exclude_id:
                continue
            if needle and needle not in document.get("displayName", "").lower() \
                    and needle not in document.get("username", "").lower():
                continue
            users.append(self.to_model(User, document))
        return users[:limit]

    async def count_dependents(self, user_id: str) -> Dict[str, int]:
        c = self.collections
        counts = {
            c.posts: await self.store.count(c.posts, {"userId": user_id}),
            c.likes: await self.store.count(c.likes, {"userId": user_id}),
            c.comments: await self.store.count(c.comments, {"userId": user_id}),
            c.custom_exercises: await self.store.count(c.custom_exercises, {"userId": user_id}),
            c.days_goals: await self.store.count(c.days_goals, {"userId": user_id}),
            c.notifications: await self.store.count(c.notifications, {"userId": user_id}),
            "followers": await self.store.count(c.follows, {"followingId": user_id}),
            "following": await self.store.count(c.follows, {"followerId": user_id}),
        }
        return {name: count for name, count in counts.items() if count}

    async def delete_user(self, user_id: str, actor_id: str) -> None:
        """Удалить профиль, у которого не осталось зависимых записей.

        Каскадного удаления нет: посты, лайки, комментарии, подписки и прочее
        владелец удаляет сам, иначе ConflictError.
        """
        await self.validators.users.authorize_delete(user_id, actor_id)
        dependents = await self.count_dependents(user_id)
        if dependents:
            raise ConflictError("У пользователя остались связанные записи", dependents)
        await self.store.delete(self.collections.users, user_id)
        logger.info(f"Удалён пользователь {user_id}")
