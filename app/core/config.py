from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql://musclegram_user:musclegram_password@db:5432/musclegram_db"
    # sql: PostgreSQL через SQLAlchemy; memory: хранилище в памяти процесса для локальной разработки
    DOCUMENT_STORE: str = "sql"
    # При продакшн/обычной разработке лучше не пересоздавать БД на каждом старте
    RESET_DATABASE: bool = False
    DATABASE_ECHO: bool = False

    # Токены выдаёт внешний провайдер идентификации, мы их только проверяем
    SECRET_KEY: str = "SECRET_KEY_FOR_MUSCLEGRAM"
    ALGORITHM: str = "HS256"

    LOOKUP_TIMEOUT_SECONDS: float = 5.0
    UNIQUE_WRITE_MAX_ATTEMPTS: int = 3
    COMMENT_MAX_DEPTH: int = 50
    NOTIFICATIONS_PAGE_SIZE: int = 50
    POSTS_PAGE_SIZE: int = 50

    MINIO_ENDPOINT: str = "minio:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET: str = "musclegram-photos"
    MINIO_PUBLIC_URL: str = "http://localhost:9000"

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

settings = Settings()
