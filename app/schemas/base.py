from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentModel(BaseModel):
    """Базовая модель записи: в Python поля snake_case, в хранилище и API camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
