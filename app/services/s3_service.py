import logging
import uuid

from fastapi import UploadFile, HTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _get_session():
    import aiobotocore.session
    session = aiobotocore.session.get_session()
    return session.create_client(
        "s3",
        endpoint_url=f"http://{settings.MINIO_ENDPOINT}",
        aws_access_key_id=settings.MINIO_ACCESS_KEY,
        aws_secret_access_key=settings.MINIO_SECRET_KEY,
        region_name="us-east-1",
    )


async def ensure_bucket_exists() -> None:
    async with _get_session() as client:
        try:
            await client.head_bucket(Bucket=settings.MINIO_BUCKET)
        except Exception:
            logger.info(f"Бакет {settings.MINIO_BUCKET} не найден, создаём")
            await client.create_bucket(Bucket=settings.MINIO_BUCKET)


def validate_photo(file: UploadFile, content: bytes) -> None:
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=415,
            detail=f"Тип файла '{file.content_type}' не поддерживается. Допустимы: JPEG, PNG, GIF.",
        )
    if not content:
        raise HTTPException(status_code=400, detail="Файл пустой")
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(status_code=413, detail="Размер фото превышает 10 МБ")


def photo_key(user_id: str, content_type: str) -> str:
    return f"posts/{user_id}/{uuid.uuid4().hex}.{ALLOWED_CONTENT_TYPES[content_type]}"


def photo_url(s3_key: str) -> str:
    """Публичный адрес фото: значение для exercise.photo в посте."""
    return f"{settings.MINIO_PUBLIC_URL.rstrip('/')}/{settings.MINIO_BUCKET}/{s3_key}"


async def upload_photo(file: UploadFile, user_id: str) -> tuple[str, str, int]:
    """Загрузить фото тренировки. Возвращает (s3_key, url, size)."""
    content = await file.read()
    validate_photo(file, content)

    s3_key = photo_key(user_id, file.content_type)
    async with _get_session() as client:
        await client.put_object(
            Bucket=settings.MINIO_BUCKET,
            Key=s3_key,
            Body=content,
            ContentType=file.content_type,
        )

    logger.info(f"Загружено фото {s3_key} ({len(content)} байт)")
    return s3_key, photo_url(s3_key), len(content)


async def delete_photo(s3_key: str) -> None:
    async with _get_session() as client:
        await client.delete_object(Bucket=settings.MINIO_BUCKET, Key=s3_key)
