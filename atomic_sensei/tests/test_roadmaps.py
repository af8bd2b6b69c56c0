def test_create_roadmap(roadmap):
    assert roadmap["title"] == "Python from Zero"
    assert roadmap["goal"] == "Learn Python"
    assert roadmap["progress"] == 0
    assert [len(m["topics"]) for m in roadmap["modules"]] == [2, 1]

    variables = roadmap["modules"][0]["topics"][0]
    assert variables["estimated_time_minutes"] == 8
    assert [s["title"] for s in variables["subtopics"]] == ["Assignment", "Naming rules"]
    # Topics without an estimate get the default
    assert roadmap["modules"][0]["topics"][1]["estimated_time_minutes"] == 10


def test_create_roadmap_requires_goal(client, auth_headers):
    response = client.post("/api/roadmaps", json={"goal": "   "}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Learning goal is required"


def test_create_roadmap_ai_failure(client, auth_headers, fake_llm):
    fake_llm.fail = True
    response = client.post("/api/roadmaps", json={"goal": "Learn Go"}, headers=auth_headers)
    assert response.status_code == 500
    assert "more specific learning goal" in response.json()["detail"]


def test_list_and_get_roadmap(client, auth_headers, roadmap):
    listing = client.get("/api/roadmaps", headers=auth_headers).json()
    assert [r["id"] for r in listing] == [roadmap["id"]]

    assert client.get(f"/api/roadmaps/{roadmap['id']}", headers=auth_headers).json()["id"] == roadmap["id"]

    missing = client.get("/api/roadmaps/does-not-exist", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Roadmap not found"


def test_topic_completion_updates_progress(client, auth_headers, roadmap):
    url = f"/api/roadmaps/{roadmap['id']}/progress"

    response = client.put(url, json={"module_index": 0, "topic_index": 0, "completed": True}, headers=auth_headers)
    assert response.status_code == 200
    updated = response.json()["roadmap"]
    assert updated["progress"] == 33
    assert updated["current_module"] == 0 and updated["current_topic"] == 1
    assert updated["modules"][0]["completed"] is False

    updated = client.put(
        url, json={"module_index": 0, "topic_index": 1, "completed": True}, headers=auth_headers
    ).json()["roadmap"]
    assert updated["progress"] == 67
    assert updated["modules"][0]["completed"] is True
    assert updated["current_module"] == 1 and updated["current_topic"] == 0

    updated = client.put(
        url, json={"module_index": 1, "topic_index": 0, "completed": True}, headers=auth_headers
    ).json()["roadmap"]
    assert updated["progress"] == 100
    assert updated["completed_at"] is not None
    # The pointer stays on the last topic once the roadmap is finished
    assert updated["current_module"] == 1 and updated["current_topic"] == 0

    updated = client.put(
        url, json={"module_index": 0, "topic_index": 1, "completed": False}, headers=auth_headers
    ).json()["roadmap"]
    assert updated["progress"] == 67
    assert updated["modules"][0]["completed"] is False
    assert updated["completed_at"] is None


def test_topic_completion_invalid_index(client, auth_headers, roadmap):
    response = client.put(
        f"/api/roadmaps/{roadmap['id']}/progress",
        json={"module_index": 5, "topic_index": 0, "completed": True},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid module or topic index"


def test_subtopic_completion_cascades(client, auth_headers, roadmap):
    url = f"/api/roadmaps/{roadmap['id']}/progress/subtopic"

    def put(subtopic_index, completed):
        body = {"module_index": 0, "topic_index": 0, "subtopic_index": subtopic_index, "completed": completed}
        return client.put(url, json=body, headers=auth_headers)

    first = put(0, True).json()["roadmap"]
    assert first["modules"][0]["topics"][0]["completed"] is False
    assert first["progress"] == 0

    second = put(1, True).json()["roadmap"]
    assert second["modules"][0]["topics"][0]["completed"] is True
    assert second["progress"] == 33
    assert second["current_topic"] == 1

    undone = put(0, False).json()["roadmap"]
    assert undone["modules"][0]["topics"][0]["completed"] is False
    assert undone["modules"][0]["completed"] is False
    assert undone["progress"] == 0

    invalid = put(7, True)
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid module, topic, or subtopic index"


def test_progress_summary(client, auth_headers, roadmap):
    client.put(
        f"/api/roadmaps/{roadmap['id']}/progress",
        json={"module_index": 0, "topic_index": 0, "completed": True},
        headers=auth_headers,
    )
    summary = client.get(f"/api/roadmaps/{roadmap['id']}/progress", headers=auth_headers).json()

    assert summary["progress"] == 33
    assert summary["completed_topics"] == 1
    assert summary["total_topics"] == 3
    assert summary["next_unit"] == {"module_index": 0, "topic_index": 1, "subtopic_index": None}
    assert summary["modules"][0] == {
        "index": 0,
        "title": "Basics",
        "completed": False,
        "completed_topics": 1,
        "total_topics": 2,
    }


def test_delete_roadmap(client, auth_headers, roadmap):
    client.post(
        "/api/content/generate",
        json={"roadmap_id": roadmap["id"], "module_index": 0, "topic_index": 1},
        headers=auth_headers,
    )

    response = client.delete(f"/api/roadmaps/{roadmap['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get(f"/api/roadmaps/{roadmap['id']}", headers=auth_headers).status_code == 404
    assert client.get(
        f"/api/content/roadmap/{roadmap['id']}/module/0/topic/1", headers=auth_headers
    ).status_code == 404
    assert client.delete(f"/api/roadmaps/{roadmap['id']}", headers=auth_headers).status_code == 404
