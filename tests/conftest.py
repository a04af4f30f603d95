"""
Общие фикстуры для всех тестов MuscleGram backend.

Стратегия:
- Вместо PostgreSQL используется MemoryDocumentStore с той же семантикой
  (create-if-absent, compare-and-set, порядок создания _seq).
- Сервисы получают хранилище через BoundedStore с коротким таймаутом.
- Тестовое FastAPI-приложение создаётся без startup-событий; зависимость
  get_document_store заменяется на хранилище в памяти.
- JWT-токены подписываются здесь же (make_access_token) ключом из settings,
  как их выпускал бы провайдер идентификации; sub: id пользователя.
"""

import os

os.environ.setdefault("DOCUMENT_STORE", "memory")

import pytest
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from datetime import datetime, timedelta, timezone
from jose import jwt
from typing import AsyncGenerator, Optional

from app.api.router import api_router
from app.core.config import settings
from app.core.database import get_document_store
from app.core.exception_handlers import register_exception_handlers
from app.repositories.memory_store import MemoryDocumentStore
from app.schemas.post import Post
from app.schemas.user import User
from app.services.bounded_store import BoundedStore
from app.services.exercise_service import CustomExerciseService
from app.services.follow_service import FollowService
from app.services.goal_service import DaysGoalService
from app.services.notification_service import NotificationService
from app.services.post_service import PostService
from app.services.user_service import UserService


# ---------------------------------------------------------------------------
# Вспомогательные функции
# ---------------------------------------------------------------------------

def create_test_app() -> FastAPI:
    """Тестовое FastAPI-приложение без startup-событий."""
    test_app = FastAPI(title="MuscleGram Test App")
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix="/api/v1")
    return test_app


def make_access_token(subject: Optional[str], expires_delta: timedelta = timedelta(minutes=30), **claims) -> str:
    """Подписать JWT так, как это делает провайдер идентификации."""
    to_encode = dict(claims, exp=datetime.now(timezone.utc) + expires_delta)
    if subject is not None:
        to_encode["sub"] = subject
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def make_auth_headers(user_id: str) -> dict:
    """Создать заголовки авторизации с валидным JWT для указанного пользователя."""
    access_token = make_access_token(user_id)
    return {"Authorization": f"Bearer {access_token}"}


def make_user_payload(username: str, /, **overrides) -> dict:
    payload = {
        "email": f"{username}@example.com",
        "displayName": username.capitalize(),
        "username": username,
        "bio": "",
        "avatar": f"https://cdn.example.com/{username}.png",
    }
    payload.update(overrides)
    return payload


def make_post_payload(sets=None, **overrides) -> dict:
    payload = {
        "content": "Сегодня жим",
        "exercise": {
            "id": 1,
            "name": "Жим лёжа",
            "sets": sets if sets is not None else [
                {"weight": "60", "reps": "10"},
                {"weight": "62.5", "reps": "8"},
            ],
        },
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Хранилище и сервисы
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def store(memory_store) -> BoundedStore:
    return BoundedStore(memory_store, timeout=1.0)


@pytest.fixture
def user_service(store) -> UserService:
    return UserService(store)


@pytest.fixture
def notification_service(store) -> NotificationService:
    return NotificationService(store)


@pytest.fixture
def post_service(store, notification_service) -> PostService:
    return PostService(store, notifications=notification_service)


@pytest.fixture
def follow_service(store, notification_service) -> FollowService:
    return FollowService(store, notifications=notification_service)


@pytest.fixture
def exercise_service(store) -> CustomExerciseService:
    return CustomExerciseService(store)


@pytest.fixture
def goal_service(store) -> DaysGoalService:
    return DaysGoalService(store)


# ---------------------------------------------------------------------------
# Фикстуры пользователей и постов
# ---------------------------------------------------------------------------

@pytest.fixture
async def alice(user_service) -> User:
    return await user_service.create_user(make_user_payload("alice"), "u-alice")


@pytest.fixture
async def bob(user_service) -> User:
    return await user_service.create_user(make_user_payload("bob"), "u-bob")


@pytest.fixture
async def carol(user_service) -> User:
    return await user_service.create_user(make_user_payload("carol"), "u-carol")


@pytest.fixture
async def alice_post(post_service, alice) -> Post:
    return await post_service.create_post(make_post_payload(), alice.id)


# ---------------------------------------------------------------------------
# HTTP-клиенты
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(memory_store) -> AsyncGenerator[AsyncClient, None]:
    """Клиент без токена; get_document_store → memory_store."""
    app = create_test_app()
    app.dependency_overrides[get_document_store] = lambda: memory_store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
