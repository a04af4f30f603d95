import logging

from app.core.base import Base
from app.core.collections import CollectionRegistry, default_collections
from app.core.config import settings
from app.core.db import engine, AsyncSessionLocal
from app.repositories.document_store import DocumentStore, SqlDocumentStore
from app.repositories.memory_store import MemoryDocumentStore

logger = logging.getLogger(__name__)


def build_document_store(collections: CollectionRegistry = default_collections) -> DocumentStore:
    if settings.DOCUMENT_STORE == "memory":
        logger.warning("Используется хранилище в памяти, данные не сохраняются между запусками")
        return MemoryDocumentStore(collections)
    return SqlDocumentStore(AsyncSessionLocal, collections)


document_store = build_document_store()


def get_document_store() -> DocumentStore:
    """Зависимость: хранилище документов приложения"""
    return document_store


async def init_database(store: DocumentStore = document_store):
    """Инициализация базы данных: по таблице на каждую коллекцию"""
    if not isinstance(store, SqlDocumentStore):
        return

    async with engine.begin() as conn:
        # Удаляем все таблицы если RESET_DATABASE=true
        if settings.RESET_DATABASE:
            logger.warning("RESET_DATABASE=true - пересоздаем БД")
            await conn.run_sync(Base.metadata.drop_all)

        await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Таблицы коллекций созданы/проверены: {', '.join(store.collections.names())}")
