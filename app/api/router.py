from fastapi import APIRouter
from app.api.v1.users import router as users_router
from app.api.v1.posts import router as posts_router
from app.api.v1.follows import router as follows_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.exercises import router as exercises_router
from app.api.v1.goals import router as goals_router

api_router = APIRouter()

api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(posts_router, prefix="/posts", tags=["posts"])
api_router.include_router(follows_router, prefix="/follows", tags=["follows"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
api_router.include_router(exercises_router, prefix="/exercises", tags=["exercises"])
api_router.include_router(goals_router, prefix="/goals", tags=["goals"])
