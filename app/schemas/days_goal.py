from pydantic import Field

from app.schemas.base import DocumentModel


class DaysGoalSet(DocumentModel):
    monthly_target: int = Field(gt=0, le=31)


class DaysGoal(DocumentModel):
    id: str
    user_id: str
    monthly_target: int
    created_at: str
    updated_at: str


class DaysGoalProgress(DocumentModel):
    user_id: str
    monthly_target: int
    current_month_days: int
    achievement_rate: int
