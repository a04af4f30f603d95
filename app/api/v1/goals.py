from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import get_current_user, get_goal_service
from app.schemas.days_goal import DaysGoal, DaysGoalProgress, DaysGoalSet
from app.schemas.user import User
from app.services.goal_service import DaysGoalService

router = APIRouter()


@router.get("/days", response_model=DaysGoal)
async def get_days_goal(
    current_user: User = Depends(get_current_user),
    goals: DaysGoalService = Depends(get_goal_service),
):
    """Текущая цель по тренировочным дням в месяц"""
    goal = await goals.get_goal(current_user.id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Цель по дням не задана")
    return goal


@router.put("/days", response_model=DaysGoal)
async def set_days_goal(
    goal_data: DaysGoalSet,
    current_user: User = Depends(get_current_user),
    goals: DaysGoalService = Depends(get_goal_service),
):
    """Задать или изменить цель"""
    return await goals.set_goal(goal_data.monthly_target, current_user.id)


@router.delete("/days", status_code=204)
async def delete_days_goal(
    current_user: User = Depends(get_current_user),
    goals: DaysGoalService = Depends(get_goal_service),
):
    await goals.delete_goal(current_user.id)


@router.get("/days/progress", response_model=DaysGoalProgress)
async def get_my_progress(
    current_user: User = Depends(get_current_user),
    goals: DaysGoalService = Depends(get_goal_service),
):
    return await goals.get_progress(current_user.id)


@router.get("/days/{user_id}/progress", response_model=DaysGoalProgress)
async def get_user_progress(
    user_id: str,
    current_user: User = Depends(get_current_user),
    goals: DaysGoalService = Depends(get_goal_service),
):
    return await goals.get_progress(user_id)
