"""Spaced-repetition scheduling for the next lesson delivery."""
from datetime import datetime, timedelta
from typing import Any, Dict, List

from atomic_sensei.models.timer import Timer

BASE_INTERVAL_MINUTES = 60
MID_INTERVAL_MINUTES = 30
REVIEW_INTERVAL_MINUTES = 10
MAX_INTERVAL_MINUTES = 7 * 24 * 60


def fallback_schedule(percentage_score: float, passed: bool, review_count: int = 0) -> Dict[str, Any]:
    """
    Decide the next interval without the AI provider.

    - score > 80: interval doubles with every previous review, capped at a week
    - 50..80: half an hour, a review only when the quiz was failed
    - < 50: ten minutes, always a review
    """
    if percentage_score > 80:
        interval = min(BASE_INTERVAL_MINUTES * 2 ** max(review_count, 0), MAX_INTERVAL_MINUTES)
        return {
            "interval_minutes": interval,
            "is_review": False,
            "reason": f"Strong result ({percentage_score}%), moving on after {interval} minutes",
        }
    if percentage_score >= 50:
        return {
            "interval_minutes": MID_INTERVAL_MINUTES,
            "is_review": not passed,
            "reason": f"Partial understanding ({percentage_score}%), short break before continuing",
        }
    return {
        "interval_minutes": REVIEW_INTERVAL_MINUTES,
        "is_review": True,
        "reason": f"Low score ({percentage_score}%), review this topic soon",
    }


def normalize_schedule(data: Dict[str, Any], fallback: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce an AI scheduling answer into a clamped schedule, or use ``fallback``."""
    raw_interval = data.get("intervalMinutes", data.get("interval_minutes"))
    try:
        interval = int(round(float(raw_interval)))
    except (TypeError, ValueError, OverflowError):
        return fallback

    is_review = data.get("isReview", data.get("is_review", fallback["is_review"]))
    if isinstance(is_review, str):
        is_review = is_review.strip().lower() == "true"

    return {
        "interval_minutes": max(1, min(MAX_INTERVAL_MINUTES, interval)),
        "is_review": bool(is_review),
        "reason": str(data.get("reason") or fallback["reason"]),
    }


def next_delivery_time(now: datetime, minutes: int) -> datetime:
    return now + timedelta(minutes=minutes)


def select_active(timers: List[Timer]) -> List[Timer]:
    """Active timers whose content has not been delivered, earliest first."""
    return sorted(
        (t for t in timers if t.active and not t.content_delivered),
        key=lambda t: t.next_content_delivery,
    )


def select_due(timers: List[Timer], now: datetime) -> List[Timer]:
    return [t for t in select_active(timers) if t.next_content_delivery <= now]


def snooze(timer: Timer, minutes: int) -> Timer:
    """
    Postpone a delivery.

    Raises:
        ValueError: If minutes is less than 1
    """
    if minutes is None or minutes < 1:
        raise ValueError("Invalid snooze time")
    timer.next_content_delivery = timer.next_content_delivery + timedelta(minutes=minutes)
    timer.notification_sent = False
    timer.notification_sent_at = None
    return timer


def mark_notified(timer: Timer, now: datetime) -> Timer:
    timer.notification_sent = True
    timer.notification_sent_at = now
    return timer


def mark_delivered(timer: Timer, now: datetime) -> Timer:
    timer.content_delivered = True
    timer.content_delivered_at = now
    return timer
