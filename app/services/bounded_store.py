import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Mapping, Optional, TypeVar

from app.core.config import settings
from app.core.errors import NotFoundError, OperationTimeoutError
from app.repositories.document_store import DocumentStore, Filters

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedStore:
    """Обёртка над DocumentStore: каждый запрос ограничен таймаутом вызывающего."""

    def __init__(self, store: DocumentStore, timeout: Optional[float] = None):
        self.store = store
        self.collections = store.collections
        self.timeout = timeout if timeout is not None else settings.LOOKUP_TIMEOUT_SECONDS

    async def _bounded(self, operation: Awaitable[T], description: str) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Таймаут обращения к хранилищу ({self.timeout}s): {description}")
            raise OperationTimeoutError(
                f"Хранилище не ответило за {self.timeout} с: {description}"
            ) from e

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return await self._bounded(self.store.get(collection, doc_id), f"get {collection}/{doc_id}")

    async def find(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return await self._bounded(
            self.store.find(collection, filters, order_by=order_by, descending=descending, limit=limit),
            f"find {collection} {dict(filters or {})}",
        )

    async def find_one(self, collection: str, filters: Filters) -> Optional[Dict[str, Any]]:
        documents = await self.find(collection, filters, limit=1)
        return documents[0] if documents else None

    async def count(self, collection: str, filters: Optional[Filters] = None) -> int:
        return await self._bounded(self.store.count(collection, filters), f"count {collection}")

    async def exists(self, collection: str, filters: Filters) -> bool:
        return await self.find_one(collection, filters) is not None

    async def create(self, collection: str, data: Mapping[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._bounded(self.store.create(collection, data, doc_id), f"create {collection}")

    async def update(
        self,
        collection: str,
        doc_id: str,
        patch: Mapping[str, Any],
        expected_rev: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self._bounded(
            self.store.update(collection, doc_id, patch, expected_rev),
            f"update {collection}/{doc_id}",
        )

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await self._bounded(self.store.delete(collection, doc_id), f"delete {collection}/{doc_id}")

    async def require(self, collection: str, doc_id: Optional[str]) -> Dict[str, Any]:
        """Найти документ по id или выбросить NotFoundError."""
        document = await self.get(collection, doc_id) if doc_id else None
        if document is None:
            raise NotFoundError(collection, str(doc_id))
        return document

    async def require_user(self, user_id: Optional[str]) -> Dict[str, Any]:
        return await self.require(self.collections.users, user_id)

    async def require_post(self, post_id: Optional[str]) -> Dict[str, Any]:
        return await self.require(self.collections.posts, post_id)

    async def require_comment(self, comment_id: Optional[str]) -> Dict[str, Any]:
        return await self.require(self.collections.comments, comment_id)
