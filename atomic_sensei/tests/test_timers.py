import asyncio
from datetime import datetime, timedelta

import pytest

from atomic_sensei.learning_db import get_timer_db, load_reminders_db, save_reminders_db, save_timer_db
from atomic_sensei.models.timer import Timer


def _user_id(client, headers):
    return client.get("/api/users/profile", headers=headers).json()["id"]


@pytest.fixture
def due_timer(client, auth_headers, roadmap):
    """A delivery timer for the roadmap that is already due."""
    timer = Timer(
        user_id=_user_id(client, auth_headers),
        roadmap_id=roadmap["id"],
        next_content_delivery=datetime.now() - timedelta(minutes=5),
        reason="Time for the next lesson",
    )
    asyncio.run(save_timer_db(timer))
    return timer


def test_next_without_due_timers(client, auth_headers):
    assert client.get("/api/timers/next", headers=auth_headers).json() == {
        "message": "No content ready for delivery"
    }


def test_next_asks_for_generation_then_delivers(client, auth_headers, roadmap, due_timer):
    pending = client.get("/api/timers/next", headers=auth_headers).json()
    assert pending["message"] == "Content needs to be generated"
    assert pending["topic"]["index"] == 0
    assert pending["subtopic_index"] == 0
    assert pending["timer"]["notification_sent"] is False

    client.post(
        "/api/content/generate",
        json={"roadmap_id": roadmap["id"], "module_index": 0, "topic_index": 0, "subtopic_index": 0},
        headers=auth_headers,
    )
    delivered = client.get("/api/timers/next", headers=auth_headers).json()
    assert delivered["content"]["title"] == "Assignment"
    assert delivered["quiz"] is None
    assert delivered["is_review"] is False
    assert delivered["timer"]["notification_sent"] is True


def test_mark_delivered_removes_from_active(client, auth_headers, due_timer):
    assert len(client.get("/api/timers/active", headers=auth_headers).json()) == 1

    response = client.put(f"/api/timers/{due_timer.id}/delivered", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["timer"]["content_delivered"] is True
    assert client.get("/api/timers/active", headers=auth_headers).json() == []


def test_snooze(client, auth_headers, due_timer):
    invalid = client.put(f"/api/timers/{due_timer.id}/snooze", json={"snooze_minutes": 0}, headers=auth_headers)
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid snooze time"

    missing = client.put("/api/timers/missing/snooze", json={"snooze_minutes": 5}, headers=auth_headers)
    assert missing.status_code == 404

    ok = client.put(f"/api/timers/{due_timer.id}/snooze", json={"snooze_minutes": 15}, headers=auth_headers)
    assert ok.status_code == 200
    stored = asyncio.run(get_timer_db(due_timer.id, due_timer.user_id))
    assert stored.next_content_delivery == due_timer.next_content_delivery + timedelta(minutes=15)
    assert client.get("/api/timers/next", headers=auth_headers).json()["message"] == "No content ready for delivery"


def test_delete_timer(client, auth_headers, due_timer):
    assert client.delete(f"/api/timers/{due_timer.id}", headers=auth_headers).status_code == 200
    assert client.delete(f"/api/timers/{due_timer.id}", headers=auth_headers).status_code == 404


def test_suggest_interval(client, auth_headers, roadmap, fake_llm):
    response = client.post(
        "/api/timers/suggest",
        json={"roadmap_id": roadmap["id"], "last_score": 90},
        headers=auth_headers,
    )
    assert response.json() == {"minutes": 45, "reason": "Enough time to absorb the lesson"}

    fake_llm.fail = True
    fallback = client.post("/api/timers/suggest", json={}, headers=auth_headers).json()
    assert fallback["minutes"] == 30


def test_reminder_lifecycle(client, auth_headers, roadmap):
    assert client.get("/api/timers/reminder", headers=auth_headers).json() is None

    created = client.post(
        "/api/timers/reminder",
        json={"roadmap_id": roadmap["id"], "module_index": 0, "topic_index": 1, "minutes": 25},
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert created.json()["active"] is True
    assert created.json()["remaining"] in {"25:00", "24:59"}

    current = client.get("/api/timers/reminder", headers=auth_headers).json()
    assert current["expired"] is False
    assert current["topic_index"] == 1

    not_yet = client.post("/api/timers/reminder/check", headers=auth_headers).json()
    assert not_yet["fired"] is False

    cleared = client.delete("/api/timers/reminder", headers=auth_headers)
    assert cleared.status_code == 200
    assert client.get("/api/timers/reminder", headers=auth_headers).json() is None
    assert len(client.get("/api/timers/reminder/history", headers=auth_headers).json()) == 1
    assert client.delete("/api/timers/reminder", headers=auth_headers).status_code == 404


def test_expired_reminder_fires_notification(client, auth_headers, roadmap):
    client.post(
        "/api/timers/reminder",
        json={"roadmap_id": roadmap["id"], "module_index": 1, "topic_index": 0, "minutes": 10},
        headers=auth_headers,
    )
    user_id = _user_id(client, auth_headers)
    state = asyncio.run(load_reminders_db(user_id))
    state["current"]["expiry_time"] = (datetime.now() - timedelta(seconds=1)).isoformat()
    asyncio.run(save_reminders_db(user_id, state["current"], state["history"]))

    assert client.get("/api/timers/reminder", headers=auth_headers).json()["expired"] is True

    fired = client.post("/api/timers/reminder/check", headers=auth_headers).json()
    assert fired["fired"] is True
    assert fired["notification"]["type"] == "timer"
    assert fired["notification"]["url"] == f"/roadmaps/{roadmap['id']}/learning?module=1&topic=0"

    notifications = client.get("/api/users/notifications", headers=auth_headers).json()
    assert notifications["unread_count"] == 1
    assert client.get("/api/timers/reminder", headers=auth_headers).json() is None

    history = client.get("/api/timers/reminder/history", headers=auth_headers).json()
    assert history[0]["active"] is False
    assert history[0]["completed_at"] is not None


def test_reminder_needs_existing_roadmap(client, auth_headers):
    response = client.post(
        "/api/timers/reminder",
        json={"roadmap_id": "missing", "minutes": 5},
        headers=auth_headers,
    )
    assert response.status_code == 404
