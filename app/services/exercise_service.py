from typing import Any, Dict, List

from app.schemas.custom_exercise import CustomExercise
from app.services.base_service import BaseService


class CustomExerciseService(BaseService):
    """Пользовательские упражнения, сгруппированные по частям тела."""

    async def create(self, data: Any, actor_id: str) -> CustomExercise:
        record = await self.validators.custom_exercises.validate_create(data, actor_id)
        document = record.to_document()
        created = await self.writer.create_unique(
            self.collections.custom_exercises,
            document,
            self.validators.custom_exercises.unique_keys(document),
            "Такое упражнение уже есть в этой группе мышц",
            doc_id=record.id,
        )
        return self.to_model(CustomExercise, created)

    async def list_by_user(self, user_id: str) -> List[CustomExercise]:
        documents = await self.store.find(self.collections.custom_exercises, {"userId": user_id})
        exercises = self.to_models(CustomExercise, documents)
        return sorted(exercises, key=lambda e: (e.body_part, e.exercise_name))

    async def group_by_body_part(self, user_id: str) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {}
        for exercise in await self.list_by_user(user_id):
            groups.setdefault(exercise.body_part, []).append(exercise.exercise_name)
        return groups

    async def update(self, exercise_id: str, patch: Any, actor_id: str) -> CustomExercise:
        current = await self.store.require(self.collections.custom_exercises, exercise_id)
        record = await self.validators.custom_exercises.validate_update(
            exercise_id, patch, actor_id, current=current
        )
        changes = self.changes(current, record)
        renamed = "bodyPart" in changes or "exerciseName" in changes
        updated = await self.writer.update_unique(
            self.collections.custom_exercises,
            current,
            changes,
            self.validators.custom_exercises.unique_keys(record.to_document()) if renamed else [],
            "Такое упражнение уже есть в этой группе мышц",
        )
        return self.to_model(CustomExercise, updated)

    async def delete(self, exercise_id: str, actor_id: str) -> None:
        await self.validators.custom_exercises.authorize_delete(exercise_id, actor_id)
        await self.store.delete(self.collections.custom_exercises, exercise_id)
