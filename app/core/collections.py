from pydantic import BaseModel


class CollectionRegistry(BaseModel):
    """Имена коллекций документного хранилища.

    Реестр передаётся явно в хранилище и сервисы, глобальных констант нет.
    """

    users: str = "users"
    posts: str = "posts"
    likes: str = "likes"
    comments: str = "comments"
    follows: str = "follows"
    custom_exercises: str = "custom_exercises"
    notifications: str = "notifications"
    days_goals: str = "days_goals"

    class Config:
        frozen = True

    def names(self) -> list[str]:
        return list(self.model_dump().values())


default_collections = CollectionRegistry()
