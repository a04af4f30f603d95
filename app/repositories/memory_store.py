import asyncio
import copy
import itertools
from typing import Any, Dict, List, Mapping, Optional

from app.core.collections import CollectionRegistry, default_collections
from app.repositories.document_store import (
    DocumentStore,
    DocumentNotFoundError,
    DuplicateDocumentError,
    Filters,
    StaleRevisionError,
    apply_patch,
    clean_payload,
    new_document_id,
)


class MemoryDocumentStore(DocumentStore):
    """Хранилище в памяти процесса с той же семантикой, что и SqlDocumentStore.

    Перед каждой операцией уступает управление циклу событий (latency),
    поэтому конкурентные корутины перемежаются так же, как запросы к внешней БД.
    """

    def __init__(self, collections: CollectionRegistry = default_collections, latency: float = 0.0):
        self.collections = collections
        self.latency = latency
        self._documents: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in collections.names()}
        self._seq = itertools.count(1)

    def _collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self._documents[collection]
        except KeyError:
            raise ValueError(f"Неизвестная коллекция: {collection}")

    async def _roundtrip(self) -> None:
        await asyncio.sleep(self.latency)

    @staticmethod
    def _matches(document: Mapping[str, Any], filters: Optional[Filters]) -> bool:
        for field, expected in (filters or {}).items():
            actual = document.get(field)
            if isinstance(expected, (list, tuple, set)):
                if actual not in expected:
                    return False
            elif actual != expected:
                return False
        return True

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        await self._roundtrip()
        document = self._collection(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def find(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        await self._roundtrip()
        documents = [d for d in self._collection(collection).values() if self._matches(d, filters)]
        documents.sort(key=lambda d: d["_seq"], reverse=descending and not order_by)
        if order_by:
            documents.sort(
                key=lambda d: (d.get(order_by) is None, d.get(order_by) if d.get(order_by) is not None else ""),
                reverse=descending,
            )
        if limit:
            documents = documents[:limit]
        return copy.deepcopy(documents)

    async def count(self, collection: str, filters: Optional[Filters] = None) -> int:
        await self._roundtrip()
        return sum(1 for d in self._collection(collection).values() if self._matches(d, filters))

    async def create(self, collection: str, data: Mapping[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        await self._roundtrip()
        documents = self._collection(collection)
        doc_id = doc_id or data.get("id") or new_document_id()
        if doc_id in documents:
            raise DuplicateDocumentError(collection, doc_id)

        document = {**copy.deepcopy(clean_payload(data)), "id": doc_id, "_seq": next(self._seq), "_rev": 1}
        documents[doc_id] = document
        return copy.deepcopy(document)

    async def update(
        self,
        collection: str,
        doc_id: str,
        patch: Mapping[str, Any],
        expected_rev: Optional[int] = None,
    ) -> Dict[str, Any]:
        await self._roundtrip()
        documents = self._collection(collection)
        current = documents.get(doc_id)
        if current is None:
            raise DocumentNotFoundError(collection, doc_id)
        if expected_rev is not None and current["_rev"] != expected_rev:
            raise StaleRevisionError(collection, doc_id, expected_rev, current["_rev"])

        data = apply_patch(clean_payload(current), copy.deepcopy(dict(patch)))
        document = {**data, "id": doc_id, "_seq": current["_seq"], "_rev": current["_rev"] + 1}
        documents[doc_id] = document
        return copy.deepcopy(document)

    async def delete(self, collection: str, doc_id: str) -> bool:
        await self._roundtrip()
        return self._collection(collection).pop(doc_id, None) is not None
