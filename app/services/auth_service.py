from typing import Optional

from jose import jwt, JWTError

from app.core.config import settings


class AuthService:
    """Проверка bearer-токенов провайдера идентификации.

    Токены выпускает внешний провайдер, backend их только проверяет.
    sub токена: id пользователя, он же id его профиля в коллекции users.
    """

    def __init__(self):
        self.SECRET_KEY = settings.SECRET_KEY
        self.ALGORITHM = settings.ALGORITHM

    def decode_subject(self, token: str) -> Optional[str]:
        """Вернуть sub валидного токена или None."""
        try:
            payload = jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except JWTError:
            return None
        subject = payload.get("sub")
        return str(subject) if subject else None


# Создаем экземпляр сервиса для импорта
auth_service = AuthService()
