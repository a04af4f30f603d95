import asyncio
from typing import List, Optional, Union

from app.repositories.document_store import DocumentStore
from app.schemas.follow import Follow, FollowCounts
from app.schemas.notification import NotificationType
from app.schemas.user import User
from app.services.base_service import BaseService
from app.services.bounded_store import BoundedStore
from app.services.notification_service import NotificationService


class FollowService(BaseService):

    def __init__(
        self,
        store: Union[DocumentStore, BoundedStore],
        timeout: Optional[float] = None,
        notifications: Optional[NotificationService] = None,
    ):
        super().__init__(store, timeout)
        self.notifications = notifications or NotificationService(self.store)

    async def follow(self, following_id: str, actor_id: str) -> Follow:
        record = await self.validators.follows.validate_create({"followingId": following_id}, actor_id)
        document = record.to_document()
        created = await self.writer.create_unique(
            self.collections.follows,
            document,
            self.validators.follows.unique_keys(document),
            "Вы уже подписаны на этого пользователя",
            doc_id=record.id,
        )
        await self.notifications.notify_safely(NotificationType.follow, following_id, actor_id)
        return self.to_model(Follow, created)

    async def unfollow(self, following_id: str, actor_id: str) -> bool:
        follows = await self.store.find(
            self.collections.follows, {"followerId": actor_id, "followingId": following_id}
        )
        for follow in follows:
            await self.validators.follows.authorize_delete(follow["id"], actor_id)
            await self.store.delete(self.collections.follows, follow["id"])
        return bool(follows)

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        return await self.store.exists(
            self.collections.follows, {"followerId": follower_id, "followingId": following_id}
        )

    async def follower_ids(self, user_id: str) -> List[str]:
        follows = await self.store.find(self.collections.follows, {"followingId": user_id}, order_by="createdAt")
        return [f["followerId"] for f in follows]

    async def following_ids(self, user_id: str) -> List[str]:
        follows = await self.store.find(self.collections.follows, {"followerId": user_id}, order_by="createdAt")
        return [f["followingId"] for f in follows]

    async def _profiles(self, user_ids: List[str]) -> List[User]:
        if not user_ids:
            return []
        documents = await self.store.find(self.collections.users, {"id": user_ids})
        by_id = {d["id"]: d for d in documents}
        return [self.to_model(User, by_id[i]) for i in user_ids if i in by_id]

    async def list_followers(self, user_id: str) -> List[User]:
        await self.store.require_user(user_id)
        return await self._profiles(await self.follower_ids(user_id))

    async def list_following(self, user_id: str) -> List[User]:
        await self.store.require_user(user_id)
        return await self._profiles(await self.following_ids(user_id))

    async def get_follow_counts(self, user_id: str) -> FollowCounts:
        followers, following = await asyncio.gather(
            self.store.count(self.collections.follows, {"followingId": user_id}),
            self.store.count(self.collections.follows, {"followerId": user_id}),
        )
        return FollowCounts(user_id=user_id, followers=followers, following=following)
