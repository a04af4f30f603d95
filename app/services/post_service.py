import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from app.core.config import settings
from app.repositories.document_store import DocumentStore
from app.schemas.comment import Comment, CommentThread
from app.schemas.like import Like
from app.schemas.notification import NotificationType
from app.schemas.post import Post, PostStats, PostWithStats
from app.services.base_service import BaseService
from app.services.bounded_store import BoundedStore
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class PostService(BaseService):
    """Посты с тренировками, лайки и комментарии."""

    def __init__(
        self,
        store: Union[DocumentStore, BoundedStore],
        timeout: Optional[float] = None,
        notifications: Optional[NotificationService] = None,
    ):
        super().__init__(store, timeout)
        self.notifications = notifications or NotificationService(self.store)

    # ==========================
    # ПОСТЫ
    # ==========================

    async def create_post(self, data: Any, actor_id: str) -> Post:
        record = await self.validators.posts.validate_create(data, actor_id)
        document = await self.store.create(self.collections.posts, record.to_document(), record.id)
        logger.info(f"Пользователь {actor_id} опубликовал пост {record.id} ({record.exercise.name})")
        return self.to_model(Post, document)

    async def update_post(self, post_id: str, patch: Any, actor_id: str) -> Post:
        current = await self.store.require_post(post_id)
        record = await self.validators.posts.validate_update(post_id, patch, actor_id, current=current)
        updated = await self.writer.update_unique(
            self.collections.posts, current, self.changes(current, record), [], "Пост изменён параллельно"
        )
        return self.to_model(Post, updated)

    async def delete_post(self, post_id: str, actor_id: str) -> None:
        """Удалить пост вместе с его лайками и комментариями."""
        await self.validators.posts.authorize_delete(post_id, actor_id)
        await self.store.delete(self.collections.posts, post_id)

        for collection in (self.collections.likes, self.collections.comments):
            for document in await self.store.find(collection, {"postId": post_id}):
                await self.store.delete(collection, document["id"])

    async def get_post_stats(self, post_id: str, viewer_id: Optional[str] = None) -> PostStats:
        like_count, comment_count = await asyncio.gather(
            self.store.count(self.collections.likes, {"postId": post_id}),
            self.store.count(self.collections.comments, {"postId": post_id}),
        )
        liked_by_me = False
        if viewer_id:
            liked_by_me = await self.store.exists(self.collections.likes, {"postId": post_id, "userId": viewer_id})
        return PostStats(
            post_id=post_id,
            like_count=like_count,
            comment_count=comment_count,
            liked_by_me=liked_by_me,
        )

    async def _with_stats(self, documents: List[Dict[str, Any]], viewer_id: Optional[str]) -> List[PostWithStats]:
        stats = await asyncio.gather(*(self.get_post_stats(d["id"], viewer_id) for d in documents))
        return [
            PostWithStats.model_validate({
                **self.to_model(Post, document).model_dump(),
                "like_count": s.like_count,
                "comment_count": s.comment_count,
                "liked_by_me": s.liked_by_me,
            })
            for document, s in zip(documents, stats)
        ]

    async def get_post(self, post_id: str, viewer_id: Optional[str] = None) -> PostWithStats:
        document = await self.store.require_post(post_id)
        return (await self._with_stats([document], viewer_id))[0]

    async def list_posts(self, viewer_id: Optional[str] = None, limit: Optional[int] = None) -> List[PostWithStats]:
        documents = await self.store.find(
            self.collections.posts,
            order_by="createdAt",
            descending=True,
            limit=limit or settings.POSTS_PAGE_SIZE,
        )
        return await self._with_stats(documents, viewer_id)

    async def list_posts_by_user(self, user_id: str, viewer_id: Optional[str] = None) -> List[PostWithStats]:
        documents = await self.store.find(
            self.collections.posts, {"userId": user_id}, order_by="createdAt", descending=True
        )
        return await self._with_stats(documents, viewer_id)

    async def list_feed(self, viewer_id: str, limit: Optional[int] = None) -> List[PostWithStats]:
        """Лента: посты пользователей, на которых подписан viewer, и его собственные."""
        follows = await self.store.find(self.collections.follows, {"followerId": viewer_id})
        author_ids = [viewer_id] + [f["followingId"] for f in follows]
        documents = await self.store.find(
            self.collections.posts,
            {"userId": author_ids},
            order_by="createdAt",
            descending=True,
            limit=limit or settings.POSTS_PAGE_SIZE,
        )
        return await self._with_stats(documents, viewer_id)

    # ==========================
    # ЛАЙКИ
    # ==========================

    async def like_post(self, post_id: str, actor_id: str) -> Like:
        record = await self.validators.likes.validate_create({"postId": post_id}, actor_id)
        document = record.to_document()
        created = await self.writer.create_unique(
            self.collections.likes,
            document,
            self.validators.likes.unique_keys(document),
            "Вы уже оценили этот пост",
            doc_id=record.id,
            references=[(self.collections.posts, post_id)],
        )

        post = await self.store.get(self.collections.posts, post_id)
        if post is not None:
            await self.notifications.notify_safely(NotificationType.like, post["userId"], actor_id, post_id)
        return self.to_model(Like, created)

    async def unlike_post(self, post_id: str, actor_id: str) -> bool:
        """Снять лайк пользователя; затрагивает только его собственные лайки."""
        likes = await self.store.find(self.collections.likes, {"postId": post_id, "userId": actor_id})
        for like in likes:
            await self.validators.likes.authorize_delete(like["id"], actor_id)
            await self.store.delete(self.collections.likes, like["id"])
        return bool(likes)

    async def list_likes(self, post_id: str) -> List[Like]:
        await self.store.require_post(post_id)
        documents = await self.store.find(self.collections.likes, {"postId": post_id}, order_by="createdAt")
        return self.to_models(Like, documents)

    # ==========================
    # КОММЕНТАРИИ
    # ==========================

    async def add_comment(self, data: Any, actor_id: str) -> Comment:
        record = await self.validators.comments.validate_create(data, actor_id)
        references = [(self.collections.posts, record.post_id)]
        if record.parent_id:
            references.append((self.collections.comments, record.parent_id))
        document = await self.writer.create_referenced(
            self.collections.comments, record.to_document(), references, doc_id=record.id
        )

        post = await self.store.get(self.collections.posts, record.post_id)
        if post is not None:
            await self.notifications.notify_safely(
                NotificationType.comment, post["userId"], actor_id, record.post_id
            )
        return self.to_model(Comment, document)

    async def update_comment(self, comment_id: str, patch: Any, actor_id: str) -> Comment:
        current = await self.store.require_comment(comment_id)
        record = await self.validators.comments.validate_update(comment_id, patch, actor_id, current=current)
        updated = await self.writer.update_unique(
            self.collections.comments, current, self.changes(current, record), [], "Комментарий изменён параллельно"
        )
        return self.to_model(Comment, updated)

    async def delete_comment(self, comment_id: str, actor_id: str) -> int:
        """Удалить комментарий вместе с ответами на него. Возвращает число удалённых."""
        await self.validators.comments.authorize_delete(comment_id, actor_id)

        # Сверху вниз: уровень удаляется до поиска его ответов, так что ответ,
        # записанный параллельно, либо не пройдёт проверку родителя, либо найдётся здесь
        deleted = set()
        level = [comment_id]
        for _ in range(self.validators.comments.max_depth + 1):
            if not level:
                break
            for doc_id in level:
                await self.store.delete(self.collections.comments, doc_id)
            deleted.update(level)
            replies = await self.store.find(self.collections.comments, {"parentId": level})
            level = [r["id"] for r in replies if r["id"] not in deleted]
        return len(deleted)

    async def list_comments(self, post_id: str) -> List[Comment]:
        documents = await self.store.find(self.collections.comments, {"postId": post_id}, order_by="createdAt")
        return self.to_models(Comment, documents)

    async def list_comment_threads(self, post_id: str) -> List[CommentThread]:
        """Комментарии поста деревом по parentId, в порядке создания."""
        comments = await self.list_comments(post_id)
        nodes = {c.id: CommentThread.model_validate({**c.model_dump(), "replies": []}) for c in comments}

        roots = []
        for comment in comments:
            node = nodes[comment.id]
            parent = nodes.get(comment.parent_id) if comment.parent_id else None
            if parent is not None:
                parent.replies.append(node)
            else:
                roots.append(node)
        return roots
