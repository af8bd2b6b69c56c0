import json

import pytest
from fastapi.testclient import TestClient

from atomic_sensei import db
from atomic_sensei.main import app
from atomic_sensei.services.llm_client import get_llm_client


ROADMAP_RESPONSE = {
    "title": "Python from Zero",
    "description": "Short lessons towards writing real programs",
    "modules": [
        {
            "title": "Basics",
            "description": "Syntax and values",
            "order": 1,
            "topics": [
                {
                    "title": "Variables",
                    "description": "Naming values",
                    "order": 1,
                    "estimatedTimeMinutes": 8,
                    "subtopics": [
                        {"title": "Assignment", "description": "The = operator"},
                        {"title": "Naming rules", "description": "Valid identifiers"},
                    ],
                },
                {"title": "Numbers", "description": "int and float", "order": 2},
            ],
        },
        {
            "title": "Control flow",
            "description": "Making decisions",
            "order": 2,
            "topics": [{"title": "If statements", "description": "Branching", "order": 1}],
        },
    ],
}

QUIZ_RESPONSE = {
    "title": "Quiz: Variables",
    "description": "Check your understanding of variables",
    "questions": [
        {
            "type": "multipleChoice",
            "question": "Which symbol assigns a value?",
            "options": ["==", "=", "->", ":"],
            "answer": 1,
            "explanation": "A single equals sign assigns.",
        },
        {
            "type": "trueFalse",
            "question": "Variable names can start with a digit.",
            "answer": False,
            "explanation": "Identifiers cannot start with a digit.",
        },
    ],
}

LESSON_TEXT = "# Variables\n\n" + "A variable names a value so you can use it later. " * 20


class FakeLLMClient:
    """Answers each prompt kind with a canned response."""

    def __init__(self):
        self.fail = False
        self.prompts = []

    async def complete(self, prompt, temperature=0.7, max_tokens=2048, json_mode=False):
        self.prompts.append(prompt)
        if self.fail:
            raise RuntimeError("provider unavailable")

        if "curriculum designer" in prompt:
            return "```json\n" + json.dumps(ROADMAP_RESPONSE) + "\n```"
        if "educational content creator" in prompt:
            return LESSON_TEXT
        if "assessment creator" in prompt:
            return json.dumps(QUIZ_RESPONSE)
        if "assessment evaluator" in prompt:
            return json.dumps({"isCorrect": True, "score": 50, "feedback": "Partly right"})
        if "spaced repetition" in prompt:
            if '"passed": false' in prompt:
                return json.dumps({"intervalMinutes": 10, "isReview": True, "reason": "Needs review"})
            return json.dumps({"intervalMinutes": 60, "isReview": False, "reason": "Good progress"})
        if "study coach" in prompt:
            return json.dumps({"minutes": 45, "reason": "Enough time to absorb the lesson"})
        return "{}"


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "USE_SUPABASE", False)
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "test.db")
    db.init_db()
    yield


@pytest.fixture
def fake_llm():
    fake = FakeLLMClient()
    app.dependency_overrides[get_llm_client] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(fake_llm):
    return TestClient(app)


def register(client, email="ada@example.com", password="secret123", name="Ada"):
    response = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password, "education_level": "undergraduate"},
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def auth_headers(client):
    user = register(client)
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def roadmap(client, auth_headers):
    response = client.post("/api/roadmaps", json={"goal": "Learn Python"}, headers=auth_headers)
    assert response.status_code == 201
    return response.json()
