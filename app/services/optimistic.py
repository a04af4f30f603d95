"""
Оптимистичная согласованность поверх хранилища без транзакций.

Уникальная запись выполняется по схеме "проверка → запись → повторная
проверка → компенсация": после записи документ с ключом перечитывается,
и из нескольких дубликатов остаётся тот, у которого меньше _seq
(порядковый номер создания, назначенный хранилищем). Проигравший удаляет
свою запись и получает ConflictError.

Так же проверяются ссылки: если пост или родительский комментарий удалили,
пока шла запись, новая запись удаляется и вызывающий получает NotFoundError.
Пост удаляется раньше своих лайков и комментариев: запись либо видит его
отсутствие, либо попадает под зачистку.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError
from app.repositories.document_store import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    StaleRevisionError,
)
from app.services.bounded_store import BoundedStore

logger = logging.getLogger(__name__)

UniqueKey = Mapping[str, Any]
# (коллекция, id) документа, на который ссылается запись
Reference = Tuple[str, str]

WON = "won"
LOST = "lost"
NOT_VISIBLE = "not_visible"


class OptimisticWriter:
    def __init__(self, store: BoundedStore, max_attempts: Optional[int] = None):
        self.store = store
        self.max_attempts = max_attempts or settings.UNIQUE_WRITE_MAX_ATTEMPTS

    async def _ensure_free(
        self,
        collection: str,
        unique_keys: Sequence[UniqueKey],
        message: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        for key in unique_keys:
            for document in await self.store.find(collection, key):
                if document["id"] != exclude_id:
                    raise ConflictError(message, {"collection": collection, "key": dict(key)})

    async def _reverify(self, collection: str, written: Dict[str, Any], unique_keys: Sequence[UniqueKey]) -> str:
        for key in unique_keys:
            holders = await self.store.find(collection, key)
            if not any(d["id"] == written["id"] for d in holders):
                return NOT_VISIBLE
            survivor = min(holders, key=lambda d: d["_seq"])
            if survivor["id"] != written["id"]:
                return LOST
        return WON

    async def _compensate_create(self, collection: str, doc_id: str) -> None:
        try:
            await self.store.delete(collection, doc_id)
        except Exception:
            logger.error(f"Не удалось удалить проигравшую запись {collection}/{doc_id}")
            raise

    async def _verify_references(
        self, collection: str, written: Dict[str, Any], references: Sequence[Reference]
    ) -> None:
        for ref_collection, ref_id in references:
            if await self.store.get(ref_collection, ref_id) is None:
                logger.info(
                    f"{ref_collection}/{ref_id} удалён во время записи {collection}/{written['id']}, запись откатывается"
                )
                await self._compensate_create(collection, written["id"])
                raise NotFoundError(ref_collection, ref_id)

    async def create_referenced(
        self,
        collection: str,
        record: Mapping[str, Any],
        references: Sequence[Reference],
        doc_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Создать документ и убедиться, что всё, на что он ссылается, ещё существует."""
        try:
            written = await self.store.create(collection, record, doc_id)
        except DuplicateDocumentError as e:
            raise ConflictError("Запись с таким id уже существует", {"collection": collection, "id": e.doc_id}) from e

        await self._verify_references(collection, written, references)
        return written

    async def create_unique(
        self,
        collection: str,
        record: Mapping[str, Any],
        unique_keys: Sequence[UniqueKey],
        message: str,
        doc_id: Optional[str] = None,
        references: Sequence[Reference] = (),
    ) -> Dict[str, Any]:
        """Создать документ, уникальный по каждому из unique_keys.

        references: документы, которые должны пережить запись (см. create_referenced).
        """
        await self._ensure_free(collection, unique_keys, message)

        try:
            written = await self.store.create(collection, record, doc_id)
        except DuplicateDocumentError as e:
            raise ConflictError(message, {"collection": collection, "id": e.doc_id}) from e

        for attempt in range(1, self.max_attempts + 1):
            # Запись могла исчезнуть при зачистке удалённого поста
            await self._verify_references(collection, written, references)
            outcome = await self._reverify(collection, written, unique_keys)
            if outcome == WON:
                return written
            if outcome == LOST:
                logger.info(f"Гонка за уникальный ключ в {collection}: запись {written['id']} удаляется")
                await self._compensate_create(collection, written["id"])
                raise ConflictError(message, {"collection": collection, "key": dict(unique_keys[0])})
            # Запись ещё не видна при чтении, повторяем проверку
            await asyncio.sleep(0.01 * attempt)

        await self._compensate_create(collection, written["id"])
        raise ConflictError(
            f"{message} (не удалось подтвердить запись за {self.max_attempts} попыток)",
            {"collection": collection},
        )

    async def update_unique(
        self,
        collection: str,
        current: Dict[str, Any],
        patch: Mapping[str, Any],
        unique_keys: Sequence[UniqueKey],
        message: str,
    ) -> Dict[str, Any]:
        """CAS-обновление с проверкой уникальности.

        При дубликате после записи прежние значения восстанавливаются.
        Оба участника гонки могут отступить, но дубликат не остаётся.
        """
        doc_id = current["id"]
        await self._ensure_free(collection, unique_keys, message, exclude_id=doc_id)

        try:
            updated = await self.store.update(collection, doc_id, patch, expected_rev=current["_rev"])
        except StaleRevisionError as e:
            raise ConflictError("Запись изменена параллельно, повторите попытку") from e
        except DocumentNotFoundError as e:
            raise NotFoundError(collection, doc_id) from e

        for key in unique_keys:
            holders = await self.store.find(collection, key)
            if any(d["id"] != doc_id for d in holders):
                previous = {field: current.get(field) for field in patch}
                try:
                    await self.store.update(collection, doc_id, previous, expected_rev=updated["_rev"])
                except StaleRevisionError:
                    logger.warning(f"Откат {collection}/{doc_id} пропущен: запись уже изменена")
                raise ConflictError(message, {"collection": collection, "key": dict(key)})

        return updated

    async def update_with_retry(
        self,
        collection: str,
        doc_id: str,
        mutate: Callable[[Dict[str, Any]], Awaitable[Mapping[str, Any]]],
    ) -> Dict[str, Any]:
        """Чтение → изменение → CAS-запись, с ограниченным числом повторов."""
        for attempt in range(1, self.max_attempts + 1):
            current = await self.store.require(collection, doc_id)
            patch = await mutate(current)
            try:
                return await self.store.update(collection, doc_id, patch, expected_rev=current["_rev"])
            except StaleRevisionError:
                logger.debug(f"CAS {collection}/{doc_id}: ревизия устарела, попытка {attempt}")
            except DocumentNotFoundError as e:
                raise NotFoundError(collection, doc_id) from e

        raise ConflictError(f"Не удалось обновить {collection}/{doc_id}: запись постоянно изменяется")
