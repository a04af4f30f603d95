from app.core.config import settings
from app.core.base import Base
from app.core.collections import CollectionRegistry, default_collections
from app.core.db import engine
from app.core.database import init_database, get_document_store

__all__ = [
    "settings", "engine", "Base",
    "CollectionRegistry", "default_collections",
    "init_database", "get_document_store",
]
