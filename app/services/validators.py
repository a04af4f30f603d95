"""
Слой валидации и согласованности модели данных MuscleGram.

Для каждой сущности есть валидатор с операциями:
- validate_create(data, actor_id): разбор входных данных, проверка ссылок
  и уникальности, возврат готовой к записи модели;
- validate_update(doc_id, patch, actor_id): проверка владельца, применение
  patch и повторная проверка результата;
- authorize_delete(doc_id, actor_id): проверка, что удаляет владелец.

Валидаторы только читают хранилище; запись выполняют сервисы.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.repositories.document_store import new_document_id, strip_meta
from app.schemas.base import utc_now_iso
from app.schemas.comment import Comment, CommentCreate, CommentUpdate
from app.schemas.custom_exercise import CustomExercise, CustomExerciseCreate, CustomExerciseUpdate
from app.schemas.days_goal import DaysGoal, DaysGoalSet
from app.schemas.follow import Follow, FollowCreate
from app.schemas.like import Like, LikeCreate
from app.schemas.notification import (
    NOTIFICATION_MESSAGES,
    Notification,
    NotificationCreate,
    NotificationType,
    NotificationUpdate,
)
from app.schemas.post import Post, PostCreate, PostExercise, PostUpdate
from app.schemas.user import User, UserCreate, UserUpdate
from app.services.bounded_store import BoundedStore

M = TypeVar("M", bound=BaseModel)

# Без пробелов, знака, экспоненты и разделителей разрядов
DECIMAL_RE = re.compile(r"[0-9]+(\.[0-9]+)?")


# ==========================
# ВСПОМОГАТЕЛЬНЫЕ ФУНКЦИИ
# ==========================

def parse_payload(model: Type[M], data: Any) -> M:
    """Разобрать входные данные pydantic-моделью, ошибки → ValidationError."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, exclude_unset=True)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Некорректные данные {model.__name__}",
            json.loads(e.json(include_url=False)),
        ) from e


def parse_non_negative_number(value: str, field: str) -> float:
    """Разобрать weight/reps: только десятичная запись вида 60 или 62.5."""
    text = str(value)
    if DECIMAL_RE.fullmatch(text):
        return float(text)
    if text.startswith("-") and DECIMAL_RE.fullmatch(text[1:]):
        raise InvalidArgumentError(f"{field}: значение не может быть отрицательным ({value})")
    raise InvalidArgumentError(f"{field}: значение '{value}' не является десятичным числом")


def check_exercise_sets(exercise: PostExercise) -> None:
    for index, workout_set in enumerate(exercise.sets):
        parse_non_negative_number(workout_set.weight, f"exercise.sets[{index}].weight")
        parse_non_negative_number(workout_set.reps, f"exercise.sets[{index}].reps")


def normalize_timestamp(value: str) -> str:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        raise ValidationError(f"timestamp: '{value}' не является датой ISO-8601")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


class RecordValidator:
    collection_attr: str = ""
    owner_field: str = "userId"

    def __init__(self, store: BoundedStore):
        self.store = store
        self.collections = store.collections

    @property
    def collection(self) -> str:
        return getattr(self.collections, self.collection_attr)

    async def _load(self, doc_id: str, current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if current is not None:
            return current
        return await self.store.require(self.collection, doc_id)

    def _check_owner(self, document: Mapping[str, Any], actor_id: str) -> None:
        if document.get(self.owner_field) != actor_id:
            raise PermissionDeniedError("Изменять запись может только её владелец")

    async def authorize_delete(self, doc_id: str, actor_id: str) -> Dict[str, Any]:
        document = await self.store.require(self.collection, doc_id)
        self._check_owner(document, actor_id)
        return document

    async def _ensure_unique(self, key: Mapping[str, Any], message: str, exclude_id: Optional[str] = None) -> None:
        for document in await self.store.find(self.collection, key):
            if document["id"] != exclude_id:
                raise ConflictError(message, {"collection": self.collection, "key": dict(key)})


# ==========================
# ВАЛИДАТОРЫ СУЩНОСТЕЙ
# ==========================

class UserValidator(RecordValidator):
    collection_attr = "users"
    owner_field = "id"

    @staticmethod
    def unique_keys(record: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return [{"username": record["username"]}, {"email": record["email"]}]

    async def validate_create(self, data: Any, actor_id: str) -> User:
        payload = parse_payload(UserCreate, data)

        if await self.store.get(self.collection, actor_id) is not None:
            raise ConflictError("Профиль пользователя уже создан")
        await self._ensure_unique({"username": payload.username}, "Имя пользователя уже занято")
        await self._ensure_unique({"email": payload.email}, "Пользователь с таким email уже существует")

        now = utc_now_iso()
        return User(id=actor_id, **payload.model_dump(), created_at=now, updated_at=now)

    async def validate_update(
        self, doc_id: str, patch: Any, actor_id: str, current: Optional[Dict[str, Any]] = None
    ) -> User:
        current = await self._load(doc_id, current)
        self._check_owner(current, actor_id)
        changes = parse_payload(UserUpdate, patch).model_dump(by_alias=True, exclude_none=True)

        if changes.get("username", current["username"]) != current["username"]:
            await self._ensure_unique({"username": changes["username"]}, "Имя пользователя уже занято", doc_id)
        if changes.get("email", current["email"]) != current["email"]:
            await self._ensure_unique({"email": changes["email"]}, "Пользователь с таким email уже существует", doc_id)

        return User.model_validate({**strip_meta(current), **changes, "updatedAt": utc_now_iso()})


class PostValidator(RecordValidator):
    collection_attr = "posts"

    async def validate_create(self, data: Any, actor_id: str) -> Post:
        payload = parse_payload(PostCreate, data)
        check_exercise_sets(payload.exercise)
        await self.store.require_user(actor_id)

        now = utc_now_iso()
        return Post(
            id=new_document_id(),
            user_id=actor_id,
            content=payload.content,
            exercise=payload.exercise,
            timestamp=normalize_timestamp(payload.timestamp) if payload.timestamp else now,
            created_at=now,
            updated_at=now,
        )

    async def validate_update(
        self, doc_id: str, patch: Any, actor_id: str, current: Optional[Dict[str, Any]] = None
    ) -> Post:
        current = await self._load(doc_id, current)
        self._check_owner(current, actor_id)
        payload = parse_payload(PostUpdate, patch)

        changes: Dict[str, Any] = {}
        if payload.content is not None:
            changes["content"] = payload.content
        if payload.exercise is not None:
            check_exercise_sets(payload.exercise)
            changes["exercise"] = payload.exercise.to_document()
        if payload.timestamp is not None:
            changes["timestamp"] = normalize_timestamp(payload.timestamp)

        return Post.model_validate({**strip_meta(current), **changes, "updatedAt": utc_now_iso()})


class LikeValidator(RecordValidator):
    collection_attr = "likes"

    @staticmethod
    def unique_keys(record: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return [{"postId": record["postId"], "userId": record["userId"]}]

    async def validate_create(self, data: Any, actor_id: str) -> Like:
        payload = parse_payload(LikeCreate, data)
        await self.store.require_user(actor_id)
        await self.store.require_post(payload.post_id)
        await self._ensure_unique({"postId": payload.post_id, "userId": actor_id}, "Вы уже оценили этот пост")

        return Like(id=new_document_id(), post_id=payload.post_id, user_id=actor_id, created_at=utc_now_iso())

    async def validate_update(self, doc_id: str, patch: Any, actor_id: str, current=None) -> Like:
        raise InvalidArgumentError("Лайк нельзя изменить, только удалить")


class CommentValidator(RecordValidator):
    collection_attr = "comments"
    # Положение в треде задаётся при создании и дальше не меняется
    thread_fields = {"parentId", "parent_id", "postId", "post_id"}

    def __init__(self, store: BoundedStore, max_depth: Optional[int] = None):
        super().__init__(store)
        self.max_depth = max_depth or settings.COMMENT_MAX_DEPTH

    async def check_thread(self, post_id: str, parent_id: str) -> None:
        """Проверить цепочку предков: тот же пост, без циклов, не глубже max_depth."""
        parent = await self.store.get(self.collection, parent_id)
        if parent is None:
            raise NotFoundError(self.collection, parent_id)
        if parent.get("postId") != post_id:
            raise InvalidArgumentError("Родительский комментарий относится к другому посту")

        visited = set()
        depth = 0
        node: Optional[Dict[str, Any]] = parent
        while node is not None:
            if node["id"] in visited:
                raise InvalidArgumentError("Обнаружен цикл в цепочке комментариев")
            visited.add(node["id"])
            depth += 1
            if depth >= self.max_depth:
                raise InvalidArgumentError(f"Превышена максимальная глубина треда ({self.max_depth})")
            if node.get("postId") != post_id:
                raise InvalidArgumentError("Цепочка комментариев пересекает другой пост")

            ancestor_id = node.get("parentId")
            node = await self.store.get(self.collection, ancestor_id) if ancestor_id else None

    async def validate_create(self, data: Any, actor_id: str) -> Comment:
        payload = parse_payload(CommentCreate, data)
        await self.store.require_user(actor_id)
        await self.store.require_post(payload.post_id)
        if payload.parent_id:
            await self.check_thread(payload.post_id, payload.parent_id)

        now = utc_now_iso()
        return Comment(
            id=new_document_id(),
            post_id=payload.post_id,
            user_id=actor_id,
            content=payload.content,
            parent_id=payload.parent_id or None,
            created_at=now,
            updated_at=now,
        )

    async def validate_update(
        self, doc_id: str, patch: Any, actor_id: str, current: Optional[Dict[str, Any]] = None
    ) -> Comment:
        current = await self._load(doc_id, current)
        self._check_owner(current, actor_id)

        if isinstance(patch, Mapping):
            moved = sorted(set(patch) & self.thread_fields)
            if moved:
                raise InvalidArgumentError(f"Комментарий нельзя перенести: поля {', '.join(moved)} неизменяемы")
        payload = parse_payload(CommentUpdate, patch)

        record = {**strip_meta(current), "updatedAt": utc_now_iso()}
        if payload.content is not None:
            record["content"] = payload.content
        return Comment.model_validate(record)


class FollowValidator(RecordValidator):
    collection_attr = "follows"
    owner_field = "followerId"

    @staticmethod
    def unique_keys(record: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return [{"followerId": record["followerId"], "followingId": record["followingId"]}]

    async def validate_create(self, data: Any, actor_id: str) -> Follow:
        payload = parse_payload(FollowCreate, data)
        if payload.following_id == actor_id:
            raise InvalidArgumentError("Нельзя подписаться на самого себя")

        await self.store.require_user(actor_id)
        await self.store.require_user(payload.following_id)
        await self._ensure_unique(
            {"followerId": actor_id, "followingId": payload.following_id},
            "Вы уже подписаны на этого пользователя",
        )

        return Follow(
            id=new_document_id(),
            follower_id=actor_id,
            following_id=payload.following_id,
            created_at=utc_now_iso(),
        )

    async def validate_update(self, doc_id: str, patch: Any, actor_id: str, current=None) -> Follow:
        raise InvalidArgumentError("Подписку нельзя изменить, только удалить")


class CustomExerciseValidator(RecordValidator):
    collection_attr = "custom_exercises"

    @staticmethod
    def unique_keys(record: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return [{
            "userId": record["userId"],
            "bodyPart": record["bodyPart"],
            "exerciseName": record["exerciseName"],
        }]

    async def validate_create(self, data: Any, actor_id: str) -> CustomExercise:
        payload = parse_payload(CustomExerciseCreate, data)
        await self.store.require_user(actor_id)
        await self._ensure_unique(
            {"userId": actor_id, "bodyPart": payload.body_part, "exerciseName": payload.exercise_name},
            "Такое упражнение уже есть в этой группе мышц",
        )

        now = utc_now_iso()
        return CustomExercise(
            id=new_document_id(),
            user_id=actor_id,
            body_part=payload.body_part,
            exercise_name=payload.exercise_name,
            created_at=now,
            updated_at=now,
        )

    async def validate_update(
        self, doc_id: str, patch: Any, actor_id: str, current: Optional[Dict[str, Any]] = None
    ) -> CustomExercise:
        current = await self._load(doc_id, current)
        self._check_owner(current, actor_id)
        changes = parse_payload(CustomExerciseUpdate, patch).model_dump(by_alias=True, exclude_none=True)

        record = {**strip_meta(current), **changes, "updatedAt": utc_now_iso()}
        if changes:
            await self._ensure_unique(
                self.unique_keys(record)[0], "Такое упражнение уже есть в этой группе мышц", doc_id
            )
        return CustomExercise.model_validate(record)


class NotificationValidator(RecordValidator):
    collection_attr = "notifications"
    mutable_fields = {"isRead", "is_read"}

    async def validate_create(self, data: Any, actor_id: Optional[str] = None) -> Notification:
        payload = parse_payload(NotificationCreate, data)

        if actor_id is not None and payload.from_user_id != actor_id:
            raise PermissionDeniedError("Уведомление можно создать только от своего имени")
        if payload.type in (NotificationType.like, NotificationType.comment) and not payload.post_id:
            raise InvalidArgumentError(f"Для уведомления '{payload.type.value}' обязателен postId")
        if payload.type == NotificationType.follow and payload.post_id:
            raise InvalidArgumentError("Уведомление о подписке не может ссылаться на пост")
        if payload.user_id == payload.from_user_id:
            raise InvalidArgumentError("Нельзя отправить уведомление самому себе")

        await self.store.require_user(payload.user_id)
        from_user = await self.store.require_user(payload.from_user_id)
        if payload.post_id:
            post = await self.store.require_post(payload.post_id)
            if post["userId"] != payload.user_id:
                raise InvalidArgumentError("Получатель уведомления должен быть автором поста")

        # Снимок имени и аватара на момент создания; дальше не синхронизируется с профилем
        return Notification(
            id=new_document_id(),
            user_id=payload.user_id,
            from_user_id=payload.from_user_id,
            from_user_name=from_user.get("displayName", ""),
            from_user_avatar=from_user.get("avatar", ""),
            type=payload.type,
            post_id=payload.post_id,
            message=payload.message or NOTIFICATION_MESSAGES[payload.type],
            is_read=False,
            created_at=utc_now_iso(),
        )

    async def validate_update(
        self, doc_id: str, patch: Any, actor_id: str, current: Optional[Dict[str, Any]] = None
    ) -> Notification:
        current = await self._load(doc_id, current)
        self._check_owner(current, actor_id)

        if isinstance(patch, Mapping):
            immutable = sorted(set(patch) - self.mutable_fields)
            if immutable:
                raise InvalidArgumentError(f"Поля уведомления неизменяемы: {', '.join(immutable)}")
        payload = parse_payload(NotificationUpdate, patch)

        return Notification.model_validate({**strip_meta(current), "isRead": payload.is_read})


class DaysGoalValidator(RecordValidator):
    collection_attr = "days_goals"

    async def validate_create(self, data: Any, actor_id: str) -> DaysGoal:
        payload = parse_payload(DaysGoalSet, data)
        await self.store.require_user(actor_id)
        # Одна цель на пользователя: id записи совпадает с id пользователя
        if await self.store.get(self.collection, actor_id) is not None:
            raise ConflictError("Цель по дням уже задана")

        now = utc_now_iso()
        return DaysGoal(
            id=actor_id,
            user_id=actor_id,
            monthly_target=payload.monthly_target,
            created_at=now,
            updated_at=now,
        )

    async def validate_update(
        self, doc_id: str, patch: Any, actor_id: str, current: Optional[Dict[str, Any]] = None
    ) -> DaysGoal:
        current = await self._load(doc_id, current)
        self._check_owner(current, actor_id)
        payload = parse_payload(DaysGoalSet, patch)

        return DaysGoal.model_validate({
            **strip_meta(current),
            "monthlyTarget": payload.monthly_target,
            "updatedAt": utc_now_iso(),
        })


class ModelValidators:
    """Набор валидаторов поверх одного хранилища."""

    def __init__(self, store: BoundedStore):
        self.users = UserValidator(store)
        self.posts = PostValidator(store)
        self.likes = LikeValidator(store)
        self.comments = CommentValidator(store)
        self.follows = FollowValidator(store)
        self.custom_exercises = CustomExerciseValidator(store)
        self.notifications = NotificationValidator(store)
        self.days_goals = DaysGoalValidator(store)
