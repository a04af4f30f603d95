from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, get_follow_service
from app.schemas.follow import Follow, FollowCounts
from app.schemas.user import User
from app.services.follow_service import FollowService

router = APIRouter()


@router.post("/{user_id}", response_model=Follow)
async def follow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    follows: FollowService = Depends(get_follow_service),
):
    """Подписаться на пользователя"""
    return await follows.follow(user_id, current_user.id)


@router.delete("/{user_id}")
async def unfollow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    follows: FollowService = Depends(get_follow_service),
):
    """Отписаться от пользователя"""
    removed = await follows.unfollow(user_id, current_user.id)
    return {"success": removed}


@router.get("/{user_id}/status")
async def follow_status(
    user_id: str,
    current_user: User = Depends(get_current_user),
    follows: FollowService = Depends(get_follow_service),
):
    return {"following": await follows.is_following(current_user.id, user_id)}


@router.get("/{user_id}/followers", response_model=List[User])
async def list_followers(
    user_id: str,
    current_user: User = Depends(get_current_user),
    follows: FollowService = Depends(get_follow_service),
):
    return await follows.list_followers(user_id)


@router.get("/{user_id}/following", response_model=List[User])
async def list_following(
    user_id: str,
    current_user: User = Depends(get_current_user),
    follows: FollowService = Depends(get_follow_service),
):
    return await follows.list_following(user_id)


@router.get("/{user_id}/counts", response_model=FollowCounts)
async def follow_counts(
    user_id: str,
    current_user: User = Depends(get_current_user),
    follows: FollowService = Depends(get_follow_service),
):
    return await follows.get_follow_counts(user_id)
