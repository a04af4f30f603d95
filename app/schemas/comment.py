from typing import List, Optional

from pydantic import Field

from app.schemas.base import DocumentModel


class CommentCreate(DocumentModel):
    post_id: str
    content: str = Field(min_length=1, max_length=1000)
    parent_id: Optional[str] = None


class CommentBody(DocumentModel):
    content: str = Field(min_length=1, max_length=1000)
    parent_id: Optional[str] = None


class CommentUpdate(DocumentModel):
    content: Optional[str] = Field(None, min_length=1, max_length=1000)


class Comment(DocumentModel):
    id: str
    post_id: str
    user_id: str
    content: str
    parent_id: Optional[str] = None
    created_at: str
    updated_at: str


class CommentThread(Comment):
    replies: List["CommentThread"] = []


CommentThread.model_rebuild()
