from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.database import get_document_store
from app.repositories.document_store import DocumentStore
from app.schemas.user import User
from app.services.auth_service import auth_service
from app.services.bounded_store import BoundedStore
from app.services.exercise_service import CustomExerciseService
from app.services.follow_service import FollowService
from app.services.goal_service import DaysGoalService
from app.services.notification_service import NotificationService
from app.services.post_service import PostService
from app.services.user_service import UserService


security = HTTPBearer()


def get_store(store: DocumentStore = Depends(get_document_store)) -> BoundedStore:
    """Хранилище с таймаутом на каждый запрос, инжектируется в сервисы."""
    return BoundedStore(store)


async def get_current_user_id(
        credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    user_id = auth_service.decode_subject(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Невалидный токен доступа",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


async def get_current_user(
        user_id: str = Depends(get_current_user_id),
        store: BoundedStore = Depends(get_store),
) -> User:
    document = await store.get(store.collections.users, user_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Сначала создайте профиль пользователя",
        )
    return User.model_validate(document)


def get_user_service(store: BoundedStore = Depends(get_store)) -> UserService:
    return UserService(store)


def get_notification_service(store: BoundedStore = Depends(get_store)) -> NotificationService:
    return NotificationService(store)


def get_post_service(
        store: BoundedStore = Depends(get_store),
        notifications: NotificationService = Depends(get_notification_service),
) -> PostService:
    return PostService(store, notifications=notifications)


def get_follow_service(
        store: BoundedStore = Depends(get_store),
        notifications: NotificationService = Depends(get_notification_service),
) -> FollowService:
    return FollowService(store, notifications=notifications)


def get_exercise_service(store: BoundedStore = Depends(get_store)) -> CustomExerciseService:
    return CustomExerciseService(store)


def get_goal_service(store: BoundedStore = Depends(get_store)) -> DaysGoalService:
    return DaysGoalService(store)
