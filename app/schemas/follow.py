from app.schemas.base import DocumentModel


class FollowCreate(DocumentModel):
    following_id: str


class Follow(DocumentModel):
    id: str
    follower_id: str
    following_id: str
    created_at: str


class FollowCounts(DocumentModel):
    user_id: str
    followers: int
    following: int
