import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import MuscleGramError, OperationTimeoutError

logger = logging.getLogger(__name__)


async def muscle_gram_error_handler(request: Request, exc: MuscleGramError) -> JSONResponse:
    if isinstance(exc, OperationTimeoutError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path}: {exc.kind} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """Доменные ошибки → HTTP-ответы {"error": ..., "detail": ...}."""
    app.add_exception_handler(MuscleGramError, muscle_gram_error_handler)
