"""
Ошибки доменного слоя MuscleGram.

Каждая ошибка относится к одной операции и возвращается вызывающему коду,
HTTP-статус назначается в обработчике app.main.
"""

from typing import Any, Optional


class MuscleGramError(Exception):
    """Базовая ошибка доменного слоя."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "detail": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(MuscleGramError):
    """Отсутствует обязательное поле или неверный формат данных."""

    kind = "validation_error"
    status_code = 422


class ConflictError(MuscleGramError):
    """Нарушение уникальности, обнаруженное до или после записи."""

    kind = "conflict"
    status_code = 409


class NotFoundError(MuscleGramError):
    """Связанная сущность не найдена."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"Запись {entity} '{entity_id}' не найдена", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class InvalidArgumentError(MuscleGramError):
    """Самоподписка, цикл комментариев, несоответствие типа уведомления и т.п."""

    kind = "invalid_argument"
    status_code = 400


class PermissionDeniedError(MuscleGramError):
    """Изменять запись может только её владелец."""

    kind = "permission_denied"
    status_code = 403


class OperationTimeoutError(MuscleGramError, TimeoutError):
    """Обращение к хранилищу не уложилось в отведённое время."""

    kind = "timeout"
    status_code = 504
