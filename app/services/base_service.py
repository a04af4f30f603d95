from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from app.repositories.document_store import DocumentStore, clean_payload, strip_meta
from app.schemas.base import DocumentModel
from app.services.bounded_store import BoundedStore
from app.services.optimistic import OptimisticWriter
from app.services.validators import ModelValidators

M = TypeVar("M", bound=BaseModel)


class BaseService:
    """Общая основа сервисов: хранилище с таймаутом, валидаторы и оптимистичная запись."""

    def __init__(self, store: Union[DocumentStore, BoundedStore], timeout: Optional[float] = None):
        self.store = store if isinstance(store, BoundedStore) else BoundedStore(store, timeout)
        self.collections = self.store.collections
        self.validators = ModelValidators(self.store)
        self.writer = OptimisticWriter(self.store)

    @staticmethod
    def to_model(model: Type[M], document: Dict[str, Any]) -> M:
        return model.model_validate(strip_meta(document))

    @classmethod
    def to_models(cls, model: Type[M], documents: List[Dict[str, Any]]) -> List[M]:
        return [cls.to_model(model, d) for d in documents]

    @staticmethod
    def changes(current: Dict[str, Any], record: DocumentModel) -> Dict[str, Any]:
        """Patch от текущего документа к проверенной записи; None удаляет поле."""
        before = clean_payload(current)
        after = clean_payload(record.to_document())
        patch = {k: v for k, v in after.items() if before.get(k) != v}
        patch.update({k: None for k in before if k not in after})
        return patch
