from typing import List, Optional

from pydantic import Field

from app.schemas.base import DocumentModel


class WorkoutSet(DocumentModel):
    # Хранятся строками, как их вводит пользователь; числовой формат проверяет валидатор
    weight: str
    reps: str


class PostExercise(DocumentModel):
    id: int
    name: str = Field(min_length=1, max_length=100)
    sets: List[WorkoutSet] = Field(min_length=1)
    memo: Optional[str] = Field(None, max_length=500)
    photo: Optional[str] = None


class PostCreate(DocumentModel):
    content: str = Field("", max_length=2000)
    exercise: PostExercise
    timestamp: Optional[str] = None


class PostUpdate(DocumentModel):
    content: Optional[str] = Field(None, max_length=2000)
    exercise: Optional[PostExercise] = None
    timestamp: Optional[str] = None


class Post(DocumentModel):
    id: str
    user_id: str
    content: str = ""
    exercise: PostExercise
    timestamp: str
    created_at: str
    updated_at: str


class PostStats(DocumentModel):
    post_id: str
    like_count: int
    comment_count: int
    liked_by_me: bool = False


class PostWithStats(Post):
    like_count: int = 0
    comment_count: int = 0
    liked_by_me: bool = False
