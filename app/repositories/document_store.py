"""
Документное хранилище MuscleGram.

Хранилище гарантирует атомарность только в пределах одного документа:
create-if-absent по id и compare-and-set обновление по ревизии.
Многодокументных транзакций нет, согласованность между документами
обеспечивает app.services.optimistic.

Документ возвращается словарём: поля записи + "id" + служебные поля
"_seq" (порядок создания) и "_rev" (ревизия).
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.collections import CollectionRegistry, default_collections
from app.models.document import collection_table

Filters = Mapping[str, Any]


class StoreError(Exception):
    """Базовая ошибка уровня хранилища."""


class DuplicateDocumentError(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Документ {collection}/{doc_id} уже существует")
        self.collection = collection
        self.doc_id = doc_id


class DocumentNotFoundError(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Документ {collection}/{doc_id} не найден")
        self.collection = collection
        self.doc_id = doc_id


class StaleRevisionError(StoreError):
    def __init__(self, collection: str, doc_id: str, expected_rev: Optional[int], actual_rev: Optional[int]):
        super().__init__(
            f"Документ {collection}/{doc_id} изменён: ожидалась ревизия {expected_rev}, текущая {actual_rev}"
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected_rev = expected_rev
        self.actual_rev = actual_rev


def new_document_id() -> str:
    return uuid.uuid4().hex


def strip_meta(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Убрать служебные поля хранилища (_seq, _rev)."""
    if document is None:
        return None
    return {k: v for k, v in document.items() if not k.startswith("_")}


def clean_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Поля записи без id и служебных полей: то, что хранится в data."""
    return {k: v for k, v in data.items() if k != "id" and not k.startswith("_")}


def apply_patch(data: Mapping[str, Any], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Слить patch в data; значение None удаляет поле."""
    merged = dict(data)
    for key, value in clean_payload(patch).items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


class DocumentStore(ABC):
    """Интерфейс документного хранилища.

    Фильтры: равенство по полям; значение-список означает "in".
    """

    collections: CollectionRegistry

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def count(self, collection: str, filters: Optional[Filters] = None) -> int:
        ...

    @abstractmethod
    async def create(self, collection: str, data: Mapping[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        """Создать документ; DuplicateDocumentError, если id занят."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        patch: Mapping[str, Any],
        expected_rev: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Обновить документ; StaleRevisionError, если ревизия не совпала."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        ...


class SqlDocumentStore(DocumentStore):
    """Хранилище поверх PostgreSQL: одна таблица на коллекцию, поля записи в JSON."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        collections: CollectionRegistry = default_collections,
    ):
        self.session_factory = session_factory
        self.collections = collections
        self._tables = {name: collection_table(name) for name in collections.names()}

    def _table(self, collection: str):
        try:
            return self._tables[collection]
        except KeyError:
            raise ValueError(f"Неизвестная коллекция: {collection}")

    @staticmethod
    def _to_document(row) -> Dict[str, Any]:
        return {**row.data, "id": row.id, "_seq": row.seq, "_rev": row.rev}

    @staticmethod
    def _clause(table, field: str, value: Any):
        if field == "id":
            column = table.c.id
            if isinstance(value, (list, tuple, set)):
                return column.in_(list(value))
            return column == value

        column = table.c.data[field]
        if isinstance(value, (list, tuple, set)):
            return column.as_string().in_([str(v) for v in value])
        if value is None:
            return column.as_string().is_(None)
        if isinstance(value, bool):
            return column.as_boolean() == value
        if isinstance(value, int):
            return column.as_integer() == value
        if isinstance(value, float):
            return column.as_float() == value
        return column.as_string() == str(value)

    def _where(self, stmt, table, filters: Optional[Filters]):
        for field, value in (filters or {}).items():
            stmt = stmt.where(self._clause(table, field, value))
        return stmt

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        table = self._table(collection)
        async with self.session_factory() as session:
            result = await session.execute(select(table).where(table.c.id == doc_id))
            row = result.one_or_none()
        return self._to_document(row) if row is not None else None

    async def find(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        table = self._table(collection)
        stmt = self._where(select(table), table, filters)

        if order_by:
            key = table.c.data[order_by].as_string()
            stmt = stmt.order_by(key.desc() if descending else key.asc(), table.c.seq.asc())
        else:
            stmt = stmt.order_by(table.c.seq.desc() if descending else table.c.seq.asc())
        if limit:
            stmt = stmt.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()
        return [self._to_document(row) for row in rows]

    async def count(self, collection: str, filters: Optional[Filters] = None) -> int:
        table = self._table(collection)
        stmt = self._where(select(func.count()).select_from(table), table, filters)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def create(self, collection: str, data: Mapping[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        table = self._table(collection)
        doc_id = doc_id or data.get("id") or new_document_id()
        payload = clean_payload(data)

        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    table.insert().values(id=doc_id, rev=1, data=payload).returning(table.c.seq)
                )
                seq = result.scalar_one()
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateDocumentError(collection, doc_id) from e

        return {**payload, "id": doc_id, "_seq": seq, "_rev": 1}

    async def update(
        self,
        collection: str,
        doc_id: str,
        patch: Mapping[str, Any],
        expected_rev: Optional[int] = None,
    ) -> Dict[str, Any]:
        table = self._table(collection)

        async with self.session_factory() as session:
            result = await session.execute(select(table).where(table.c.id == doc_id))
            row = result.one_or_none()
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            if expected_rev is not None and row.rev != expected_rev:
                raise StaleRevisionError(collection, doc_id, expected_rev, row.rev)

            data = apply_patch(row.data, patch)
            # CAS: запись проходит, только если ревизия не изменилась с момента чтения
            result = await session.execute(
                table.update()
                .where(table.c.id == doc_id, table.c.rev == row.rev)
                .values(data=data, rev=row.rev + 1)
            )
            if result.rowcount != 1:
                await session.rollback()
                raise StaleRevisionError(collection, doc_id, row.rev, None)
            await session.commit()

        return {**data, "id": doc_id, "_seq": row.seq, "_rev": row.rev + 1}

    async def delete(self, collection: str, doc_id: str) -> bool:
        table = self._table(collection)
        async with self.session_factory() as session:
            result = await session.execute(table.delete().where(table.c.id == doc_id))
            await session.commit()
        return result.rowcount > 0
