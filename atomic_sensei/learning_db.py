"""Typed load/save helpers for users, roadmaps, content, quizzes and timers.
Backed by the document store in db.py (Supabase primary, SQLite fallback)."""
from typing import Dict, List, Optional

from atomic_sensei import db
from atomic_sensei.models.content import Content
from atomic_sensei.models.quiz import Quiz, QuizResult
from atomic_sensei.models.roadmap import Roadmap
from atomic_sensei.models.timer import Notification, Timer
from atomic_sensei.models.user import User


def _dump(model) -> Dict:
    return model.model_dump(mode="json")


def _coordinate(module_index: int, topic_index: int, subtopic_index: Optional[int]) -> Dict:
    return {
        "module_index": module_index,
        "topic_index": topic_index,
        "subtopic_index": subtopic_index,
    }


# ============================================
# Users
# ============================================

async def save_user_db(user: User) -> User:
    # A user owns its own document
    doc = _dump(user)
    doc["user_id"] = user.id
    db.save_document("users", doc)
    print(f"[DB] Saved user {user.id}")
    return user


async def get_user_db(user_id: str) -> Optional[User]:
    doc = db.get_document("users", user_id)
    return User(**doc) if doc else None


async def find_user_by_email_db(email: str) -> Optional[User]:
    doc = db.find_one("users", email=email.strip().lower())
    return User(**doc) if doc else None


# ============================================
# Roadmaps
# ============================================

async def save_roadmap_db(roadmap: Roadmap) -> Roadmap:
    db.save_document("roadmaps", _dump(roadmap))
    print(f"[DB] Saved roadmap {roadmap.id} (progress={roadmap.progress}%)")
    return roadmap


async def get_roadmap_db(roadmap_id: str, user_id: str) -> Optional[Roadmap]:
    doc = db.get_document("roadmaps", roadmap_id, user_id)
    return Roadmap(**doc) if doc else None


async def list_roadmaps_db(user_id: str) -> List[Roadmap]:
    roadmaps = [Roadmap(**doc) for doc in db.find_documents("roadmaps", user_id)]
    roadmaps.sort(key=lambda r: r.created_at, reverse=True)
    return roadmaps


async def delete_roadmap_db(roadmap_id: str, user_id: str) -> Optional[Roadmap]:
    doc = db.delete_document("roadmaps", roadmap_id, user_id)
    return Roadmap(**doc) if doc else None


# ============================================
# Content
# ============================================

async def save_content_db(content: Content) -> Content:
    db.save_document("contents", _dump(content))
    return content


async def get_content_db(content_id: str, user_id: str) -> Optional[Content]:
    doc = db.get_document("contents", content_id, user_id)
    return Content(**doc) if doc else None


async def find_content_db(
    user_id: str,
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
) -> Optional[Content]:
    doc = db.find_one(
        "contents",
        user_id,
        roadmap_id=roadmap_id,
        **_coordinate(module_index, topic_index, subtopic_index),
    )
    return Content(**doc) if doc else None


async def delete_content_db(content_id: str, user_id: str) -> Optional[Content]:
    doc = db.delete_document("contents", content_id, user_id)
    return Content(**doc) if doc else None


# ============================================
# Quizzes and results
# ============================================

async def save_quiz_db(quiz: Quiz) -> Quiz:
    db.save_document("quizzes", _dump(quiz))
    return quiz


async def get_quiz_db(quiz_id: str, user_id: str) -> Optional[Quiz]:
    doc = db.get_document("quizzes", quiz_id, user_id)
    return Quiz(**doc) if doc else None


async def find_quiz_db(
    user_id: str,
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
) -> Optional[Quiz]:
    doc = db.find_one(
        "quizzes",
        user_id,
        roadmap_id=roadmap_id,
        **_coordinate(module_index, topic_index, subtopic_index),
    )
    return Quiz(**doc) if doc else None


async def save_quiz_result_db(result: QuizResult) -> QuizResult:
    db.save_document("quiz_results", _dump(result))
    print(f"[DB] Saved quiz result for quiz={result.quiz_id} score={result.percentage_score}%")
    return result


async def list_quiz_results_db(quiz_id: str, user_id: str) -> List[QuizResult]:
    results = [QuizResult(**doc) for doc in db.find_documents("quiz_results", user_id, quiz_id=quiz_id)]
    results.sort(key=lambda r: r.completed_at, reverse=True)
    return results


# ============================================
# Timers
# ============================================

async def save_timer_db(timer: Timer) -> Timer:
    db.save_document("timers", _dump(timer))
    return timer


async def get_timer_db(timer_id: str, user_id: str) -> Optional[Timer]:
    doc = db.get_document("timers", timer_id, user_id)
    return Timer(**doc) if doc else None


async def list_timers_db(user_id: str) -> List[Timer]:
    return [Timer(**doc) for doc in db.find_documents("timers", user_id)]


async def delete_timer_db(timer_id: str, user_id: str) -> Optional[Timer]:
    doc = db.delete_document("timers", timer_id, user_id)
    return Timer(**doc) if doc else None


async def delete_roadmap_children_db(roadmap_id: str, user_id: str) -> int:
    """Remove content, quizzes and timers that belong to a deleted roadmap."""
    removed = 0
    for collection in ("contents", "quizzes", "timers"):
        removed += db.delete_documents(collection, user_id, roadmap_id=roadmap_id)
    return removed


# ============================================
# Reminders and notifications
# ============================================

async def load_reminders_db(user_id: str) -> Dict:
    """Return ``{"current": dict | None, "history": [dict, ...]}`` for a user."""
    doc = db.get_document("reminders", user_id)
    if not doc:
        return {"current": None, "history": []}
    return {"current": doc.get("current"), "history": doc.get("history", [])}


async def save_reminders_db(user_id: str, current: Optional[Dict], history: List[Dict]) -> None:
    db.save_document("reminders", {"id": user_id, "user_id": user_id, "current": current, "history": history})


async def list_notifications_db(user_id: str) -> List[Notification]:
    notifications = [Notification(**doc) for doc in db.find_documents("notifications", user_id)]
    notifications.sort(key=lambda n: n.timestamp, reverse=True)
    return notifications


async def save_notification_db(notification: Notification) -> Notification:
    db.save_document("notifications", _dump(notification))
    return notification


async def clear_notifications_db(user_id: str) -> int:
    return db.delete_documents("notifications", user_id)
