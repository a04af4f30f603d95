from app.schemas.base import DocumentModel


class LikeCreate(DocumentModel):
    post_id: str


class Like(DocumentModel):
    id: str
    post_id: str
    user_id: str
    created_at: str
