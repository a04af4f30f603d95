from typing import List

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_current_user, get_current_user_id, get_user_service
from app.schemas.user import User, UserCreate, UserUpdate
from app.services.user_service import UserService

router = APIRouter()


@router.post("/", response_model=User)
async def create_profile(
    profile: UserCreate,
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    """Создать профиль для аутентифицированного пользователя"""
    return await users.create_user(profile, user_id)


@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)):
    """Профиль текущего пользователя"""
    return current_user


@router.patch("/me", response_model=User)
async def update_me(
    profile_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Обновить профиль. Имя и аватар в уже созданных уведомлениях не меняются."""
    return await users.update_user(current_user.id, profile_update, current_user.id)


@router.delete("/me", status_code=204)
async def delete_me(
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Удалить профиль (только без связанных записей)"""
    await users.delete_user(current_user.id, current_user.id)


@router.get("/search", response_model=List[User])
async def search_users(
    q: str = Query("", max_length=50, description="Подстрока имени или username"),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return await users.search_users(q, exclude_id=current_user.id, limit=limit)


@router.get("/", response_model=List[User])
async def list_users(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return await users.list_users(limit)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return await users.get_user(user_id)
