import pytest


@pytest.fixture
def quiz(client, auth_headers, roadmap):
    client.post(
        "/api/content/generate",
        json={"roadmap_id": roadmap["id"], "module_index": 0, "topic_index": 0},
        headers=auth_headers,
    )
    response = client.post(
        "/api/quizzes/generate",
        json={"roadmap_id": roadmap["id"], "module_index": 0, "topic_index": 0},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()


def test_generate_quiz(client, auth_headers, roadmap, quiz):
    assert quiz["title"] == "Quiz: Variables"
    assert quiz["ai_generated"] is True
    assert quiz["passing_score"] == 70
    assert quiz["content_id"] is not None

    multiple_choice, true_false = quiz["questions"]
    assert multiple_choice["question_type"] == "multiple-choice"
    assert [o["id"] for o in multiple_choice["options"]] == ["a", "b", "c", "d"]
    assert [o["is_correct"] for o in multiple_choice["options"]] == [False, True, False, False]
    assert true_false["question_type"] == "true-false"
    assert true_false["correct_answer"] == "false"

    again = client.post(
        "/api/quizzes/generate",
        json={"roadmap_id": roadmap["id"], "module_index": 0, "topic_index": 0},
        headers=auth_headers,
    )
    assert again.status_code == 200
    assert again.json()["id"] == quiz["id"]

    content = client.get(f"/api/content/{quiz['content_id']}", headers=auth_headers).json()
    assert content["related_quiz_id"] == quiz["id"]


def test_generate_quiz_falls_back(client, auth_headers, roadmap, fake_llm):
    fake_llm.fail = True
    response = client.post(
        "/api/quizzes/generate",
        json={"roadmap_id": roadmap["id"], "module_index": 1, "topic_index": 0},
        headers=auth_headers,
    )
    assert response.status_code == 201
    quiz = response.json()
    assert quiz["ai_generated"] is False
    assert len(quiz["questions"]) == 2
    assert "If statements" in quiz["questions"][0]["question_text"]


def test_get_quiz_by_id_and_coordinate(client, auth_headers, roadmap, quiz):
    assert client.get(f"/api/quizzes/{quiz['id']}", headers=auth_headers).json()["id"] == quiz["id"]

    by_unit = client.get(f"/api/quizzes/roadmap/{roadmap['id']}/module/0/topic/0", headers=auth_headers)
    assert by_unit.json()["id"] == quiz["id"]

    missing = client.get(f"/api/quizzes/roadmap/{roadmap['id']}/module/0/topic/0/subtopic/1", headers=auth_headers)
    assert missing.status_code == 404
    assert client.get("/api/quizzes/unknown", headers=auth_headers).status_code == 404


def test_submit_passing_quiz(client, auth_headers, roadmap, quiz):
    response = client.post(
        f"/api/quizzes/{quiz['id']}/submit",
        json={"answers": ["b", "false"], "completion_time": 42},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()

    result = data["quiz_result"]
    assert result["percentage_score"] == 100
    assert result["passed"] is True
    assert result["review_needed"] is False
    assert result["concepts_to_review"] == []
    assert result["completion_time"] == 42

    assert data["next_delivery"]["interval_minutes"] == 60
    assert data["next_delivery"]["is_review"] is False

    stored = client.get(f"/api/roadmaps/{roadmap['id']}", headers=auth_headers).json()
    topic = stored["modules"][0]["topics"][0]
    assert topic["completed"] is True
    assert topic["review_count"] == 1
    assert topic["next_review_date"] is not None
    assert stored["progress"] == 33
    assert stored["current_topic"] == 1

    timers = client.get("/api/timers/active", headers=auth_headers).json()
    assert len(timers) == 1
    assert timers[0]["is_review"] is False
    assert (timers[0]["module_index"], timers[0]["topic_index"]) == (0, 1)


def test_submit_failing_quiz(client, auth_headers, roadmap, quiz):
    response = client.post(
        f"/api/quizzes/{quiz['id']}/submit",
        json={"answers": [0, True]},
        headers=auth_headers,
    )
    result = response.json()["quiz_result"]
    assert result["percentage_score"] == 0
    assert result["passed"] is False
    assert result["review_needed"] is True
    assert result["concepts_to_review"] == ["Which symbol assigns...", "Variable names can..."]
    assert response.json()["next_delivery"]["is_review"] is True

    stored = client.get(f"/api/roadmaps/{roadmap['id']}", headers=auth_headers).json()
    assert stored["modules"][0]["topics"][0]["completed"] is False

    timer = client.get("/api/timers/active", headers=auth_headers).json()[0]
    assert timer["is_review"] is True
    assert (timer["module_index"], timer["topic_index"]) == (0, 0)
    assert timer["content_id"] == quiz["content_id"]


def test_quiz_results_newest_first(client, auth_headers, quiz):
    url = f"/api/quizzes/{quiz['id']}/submit"
    client.post(url, json={"answers": ["a", "true"]}, headers=auth_headers)
    client.post(url, json={"answers": ["b", "false"]}, headers=auth_headers)

    results = client.get(f"/api/quizzes/results/{quiz['id']}", headers=auth_headers).json()
    assert [r["percentage_score"] for r in results] == [100, 0]


def test_submit_unknown_quiz(client, auth_headers):
    response = client.post("/api/quizzes/nope/submit", json={"answers": []}, headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Quiz not found"
