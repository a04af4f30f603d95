"""
Интеграционные тесты /api/v1/exercises/* и /api/v1/goals/*.

Покрываемые сценарии:
- Пользовательские упражнения: создание, дубликат → 409, группировка, переименование, удаление
- Цель по дням: 404 до создания, PUT создаёт и обновляет, границы 1..31, прогресс
"""

import pytest

from tests.conftest import make_auth_headers, make_post_payload

pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# Упражнения
# ---------------------------------------------------------------------------

async def test_create_and_group_exercises(client, alice):
    headers = make_auth_headers(alice.id)
    for body_part, name in (("Ноги", "Выпады"), ("Ноги", "Жим ногами"), ("Руки", "Молотки")):
        response = await client.post(
            "/api/v1/exercises/", json={"bodyPart": body_part, "exerciseName": name}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["userId"] == alice.id

    response = await client.get("/api/v1/exercises/grouped", headers=headers)
    assert response.json() == {"Ноги": ["Выпады", "Жим ногами"], "Руки": ["Молотки"]}


async def test_duplicate_exercise_returns_409(client, alice):
    headers = make_auth_headers(alice.id)
    payload = {"bodyPart": "Ноги", "exerciseName": "Выпады"}

    await client.post("/api/v1/exercises/", json=payload, headers=headers)
    response = await client.post("/api/v1/exercises/", json=payload, headers=headers)
    assert response.status_code == 409


async def test_same_exercise_for_different_users(client, alice, bob):
    payload = {"bodyPart": "Ноги", "exerciseName": "Выпады"}
    first = await client.post("/api/v1/exercises/", json=payload, headers=make_auth_headers(alice.id))
    second = await client.post("/api/v1/exercises/", json=payload, headers=make_auth_headers(bob.id))
    assert first.status_code == second.status_code == 200


async def test_rename_and_delete_exercise(client, exercise_service, alice, bob):
    created = await exercise_service.create({"bodyPart": "Спина", "exerciseName": "Тяга"}, alice.id)

    response = await client.patch(
        f"/api/v1/exercises/{created.id}", json={"exerciseName": "Тяга Т-грифа"}, headers=make_auth_headers(alice.id)
    )
    assert response.status_code == 200
    assert response.json()["exerciseName"] == "Тяга Т-грифа"

    response = await client.delete(f"/api/v1/exercises/{created.id}", headers=make_auth_headers(bob.id))
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/exercises/{created.id}", headers=make_auth_headers(alice.id))
    assert response.status_code == 204


# ---------------------------------------------------------------------------
# Цель по дням
# ---------------------------------------------------------------------------

async def test_goal_not_set_returns_404(client, alice):
    response = await client.get("/api/v1/goals/days", headers=make_auth_headers(alice.id))
    assert response.status_code == 404


async def test_set_and_update_goal(client, alice):
    headers = make_auth_headers(alice.id)

    created = await client.put("/api/v1/goals/days", json={"monthlyTarget": 12}, headers=headers)
    assert created.status_code == 200
    assert created.json()["id"] == alice.id

    updated = await client.put("/api/v1/goals/days", json={"monthlyTarget": 16}, headers=headers)
    assert updated.json()["monthlyTarget"] == 16

    response = await client.get("/api/v1/goals/days", headers=headers)
    assert response.json()["monthlyTarget"] == 16


@pytest.mark.parametrize("target", [0, 32])
async def test_goal_out_of_range_returns_422(client, alice, target):
    response = await client.put(
        "/api/v1/goals/days", json={"monthlyTarget": target}, headers=make_auth_headers(alice.id)
    )
    assert response.status_code == 422


async def test_progress_counts_todays_post(client, post_service, alice, bob):
    await post_service.create_post(make_post_payload(), alice.id)
    await client.put("/api/v1/goals/days", json={"monthlyTarget": 1}, headers=make_auth_headers(alice.id))

    response = await client.get(f"/api/v1/goals/days/{alice.id}/progress", headers=make_auth_headers(bob.id))
    assert response.status_code == 200
    assert response.json() == {
        "userId": alice.id,
        "monthlyTarget": 1,
        "currentMonthDays": 1,
        "achievementRate": 100,
    }


async def test_delete_goal(client, goal_service, alice):
    await goal_service.set_goal(10, alice.id)

    response = await client.delete("/api/v1/goals/days", headers=make_auth_headers(alice.id))
    assert response.status_code == 204
    assert await goal_service.get_goal(alice.id) is None
