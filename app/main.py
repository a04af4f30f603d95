import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.core import init_database, settings
from app.core.exception_handlers import register_exception_handlers
from app.services.s3_service import ensure_bucket_exists

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="MuscleGram - social strength training log")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    await init_database()
    if settings.DOCUMENT_STORE == "sql":
        try:
            await ensure_bucket_exists()
        except Exception as e:
            logger.warning(f"MinIO недоступен, загрузка фото не будет работать: {e}")
    logger.info(f"Приложение запущено! Хранилище: {settings.DOCUMENT_STORE}")


@app.get("/")
async def root():
    base_url = "http://localhost:8000"

    return {
        "app": "MuscleGram",
        "message": "MuscleGram - log your lifts, follow your friends",
        "links": {
            "📰 Feed": f"{base_url}/api/v1/posts/feed",
            "💪 Exercises": f"{base_url}/api/v1/exercises",
            "🎯 Goals": f"{base_url}/api/v1/goals/days",
            "🔔 Notifications": f"{base_url}/api/v1/notifications",
            "📚 Docs": f"{base_url}/docs",
            "📖 ReDoc": f"{base_url}/redoc"
        }
    }
