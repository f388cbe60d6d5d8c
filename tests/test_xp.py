"""
Server-side XP awards, history and monthly credits.
"""
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from routers.users import _skin_view
from services import xp_service


def test_award_updates_xp_level_and_history(client, student):
    response = client.post("/xp/award", json={"action": "generate_control"}, headers=student["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body["xp"] == 40
    assert body["xp_gained"] == 40
    assert body["level"] == 1

    for _ in range(2):
        body = client.post("/xp/award", json={"action": "generate_control"}, headers=student["headers"]).json()
    assert body["xp"] == 120
    assert body["level"] == 2
    assert body["xp_in_level"] == 20

    me = client.get("/users/me", headers=student["headers"]).json()
    assert (me["xp"], me["level"]) == (120, 2)

    history = client.get("/history", headers=student["headers"]).json()
    assert [h["action_type"] for h in history] == ["generate_control"] * 3
    assert all(h["xp_gained"] == 40 for h in history)


def test_unknown_action_is_422(client, student):
    response = client.post("/xp/award", json={"action": "teleport"}, headers=student["headers"])
    assert response.status_code == 422
    assert response.json()["error"]["status_code"] == 422


def test_award_is_atomic(client, student, monkeypatch):
    original = xp_service.add_xp

    async def add_then_fail(db, user_id, action, document_name=None):
        await original(db, user_id, action, document_name)
        raise OperationalError("INSERT INTO history", {}, Exception("disk full"))

    monkeypatch.setattr(xp_service, "add_xp", add_then_fail)
    response = client.post("/xp/award", json={"action": "login"}, headers=student["headers"])
    assert response.status_code == 500

    monkeypatch.undo()
    status = client.get("/xp/me", headers=student["headers"]).json()
    assert status["xp"] == 0
    assert client.get("/history", headers=student["headers"]).json() == []


def test_monthly_credits_count_ai_actions_only(client, student):
    client.post("/xp/award", json={"action": "generate_summary"}, headers=student["headers"])
    client.post("/xp/award", json={"action": "generate_exercises"}, headers=student["headers"])
    client.post("/xp/award", json={"action": "login"}, headers=student["headers"])
    credits = client.get("/history/credits", headers=student["headers"]).json()
    assert credits["credits_used"] == 2


def test_level_unlocks_skin(client, student):
    for _ in range(6):
        client.post("/xp/award", json={"action": "generate_control"}, headers=student["headers"])
    # 240 XP: level 3
    response = client.put("/users/me/skin", json={"skin": "avance"}, headers=student["headers"])
    assert response.status_code == 200
    assert response.json()["skin"] == "avance"


class _RecordingSession:
    def __init__(self):
        self.commits = 0

    async def refresh(self, instance):
        pass

    async def commit(self):
        self.commits += 1


@pytest.mark.anyio
async def test_stale_stored_level_is_corrected_on_read():
    db = _RecordingSession()
    user = SimpleNamespace(id=1, xp=250, level=1)

    status = await xp_service.get_xp_status(db, user)
    assert status.level == 3
    assert user.level == 3
    assert db.commits == 1

    await xp_service.get_xp_status(db, user)
    assert db.commits == 1


def test_skin_unlocks_follow_xp_not_stored_level():
    user = SimpleNamespace(xp=240, level=1, skin="base")
    unlocked = {skin.id for skin in _skin_view(user) if skin.unlocked}
    assert unlocked == {"base", "avance"}
