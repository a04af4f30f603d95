from typing import Optional

from pydantic import Field

from app.schemas.base import DocumentModel


class CustomExerciseCreate(DocumentModel):
    body_part: str = Field(min_length=1, max_length=50)
    exercise_name: str = Field(min_length=1, max_length=100)


class CustomExerciseUpdate(DocumentModel):
    body_part: Optional[str] = Field(None, min_length=1, max_length=50)
    exercise_name: Optional[str] = Field(None, min_length=1, max_length=100)


class CustomExercise(DocumentModel):
    id: str
    user_id: str
    body_part: str
    exercise_name: str
    created_at: str
    updated_at: str
