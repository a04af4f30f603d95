from typing import Dict, List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, get_exercise_service
from app.schemas.custom_exercise import CustomExercise, CustomExerciseCreate, CustomExerciseUpdate
from app.schemas.user import User
from app.services.exercise_service import CustomExerciseService

router = APIRouter()


@router.get("/", response_model=List[CustomExercise])
async def list_exercises(
    current_user: User = Depends(get_current_user),
    exercises: CustomExerciseService = Depends(get_exercise_service),
):
    return await exercises.list_by_user(current_user.id)


@router.get("/grouped", response_model=Dict[str, List[str]])
async def list_exercises_grouped(
    current_user: User = Depends(get_current_user),
    exercises: CustomExerciseService = Depends(get_exercise_service),
):
    """Свои упражнения по частям тела"""
    return await exercises.group_by_body_part(current_user.id)


@router.post("/", response_model=CustomExercise)
async def create_exercise(
    exercise: CustomExerciseCreate,
    current_user: User = Depends(get_current_user),
    exercises: CustomExerciseService = Depends(get_exercise_service),
):
    return await exercises.create(exercise, current_user.id)


@router.patch("/{exercise_id}", response_model=CustomExercise)
async def update_exercise(
    exercise_id: str,
    exercise_update: CustomExerciseUpdate,
    current_user: User = Depends(get_current_user),
    exercises: CustomExerciseService = Depends(get_exercise_service),
):
    return await exercises.update(exercise_id, exercise_update, current_user.id)


@router.delete("/{exercise_id}", status_code=204)
async def delete_exercise(
    exercise_id: str,
    current_user: User = Depends(get_current_user),
    exercises: CustomExerciseService = Depends(get_exercise_service),
):
    await exercises.delete(exercise_id, current_user.id)
