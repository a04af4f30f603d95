import logging
import math
from datetime import datetime, timezone
from typing import Optional

from app.core.errors import ConflictError
from app.schemas.days_goal import DaysGoal, DaysGoalProgress
from app.services.base_service import BaseService

logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_TARGET = 12


class DaysGoalService(BaseService):
    """Цель по количеству тренировочных дней в месяц."""

    async def set_goal(self, monthly_target: int, actor_id: str) -> DaysGoal:
        """Создать или обновить цель пользователя."""
        collection = self.collections.days_goals
        if await self.store.get(collection, actor_id) is None:
            try:
                record = await self.validators.days_goals.validate_create(
                    {"monthlyTarget": monthly_target}, actor_id
                )
                created = await self.writer.create_unique(
                    collection, record.to_document(), [], "Цель по дням уже задана", doc_id=record.id
                )
                return self.to_model(DaysGoal, created)
            except ConflictError:
                # Цель успели создать параллельно, обновляем её
                logger.debug(f"Цель {actor_id} создана параллельно, переходим к обновлению")

        async def mutate(current):
            record = await self.validators.days_goals.validate_update(
                actor_id, {"monthlyTarget": monthly_target}, actor_id, current=current
            )
            return self.changes(current, record)

        updated = await self.writer.update_with_retry(collection, actor_id, mutate)
        return self.to_model(DaysGoal, updated)

    async def get_goal(self, user_id: str) -> Optional[DaysGoal]:
        document = await self.store.get(self.collections.days_goals, user_id)
        return self.to_model(DaysGoal, document) if document else None

    async def delete_goal(self, actor_id: str) -> None:
        await self.validators.days_goals.authorize_delete(actor_id, actor_id)
        await self.store.delete(self.collections.days_goals, actor_id)

    async def get_progress(self, user_id: str, now: Optional[datetime] = None) -> DaysGoalProgress:
        """Сколько разных дней текущего месяца пользователь тренировался."""
        await self.store.require_user(user_id)
        now = now or datetime.now(timezone.utc)
        goal = await self.get_goal(user_id)
        target = goal.monthly_target if goal else DEFAULT_MONTHLY_TARGET

        posts = await self.store.find(self.collections.posts, {"userId": user_id})
        training_days = set()
        for post in posts:
            try:
                performed = datetime.fromisoformat(post["timestamp"].replace("Z", "+00:00"))
            except (KeyError, ValueError):
                logger.warning(f"Пост {post['id']}: некорректный timestamp, пропущен")
                continue
            if performed.tzinfo is not None:
                performed = performed.astimezone(timezone.utc)
            if performed.year == now.year and performed.month == now.month:
                training_days.add(performed.date())

        days = len(training_days)
        return DaysGoalProgress(
            user_id=user_id,
            monthly_target=target,
            current_month_days=days,
            achievement_rate=math.floor(days / target * 100 + 0.5) if target > 0 else 0,
        )
