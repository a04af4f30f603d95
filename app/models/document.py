from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, JSON, Table

from app.core.base import Base


def collection_table(name: str) -> Table:
    """Таблица одной коллекции документов.

    seq: порядок создания, назначается базой и не меняется;
    rev: ревизия документа для compare-and-set обновлений.
    """
    existing = Base.metadata.tables.get(name)
    if existing is not None:
        return existing

    return Table(
        name,
        Base.metadata,
        Column("seq", Integer, primary_key=True, autoincrement=True),
        Column("id", String(128), unique=True, nullable=False, index=True),
        Column("rev", Integer, nullable=False, default=1),
        Column("data", JSON, nullable=False),
        Column("created_at", DateTime, default=datetime.utcnow),
        Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow),
    )
