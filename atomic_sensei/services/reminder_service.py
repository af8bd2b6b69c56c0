"""Learning reminder countdown and the in-app notification list."""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from atomic_sensei.models.timer import Notification, Reminder, ReminderState

HISTORY_LIMIT = 20


def create_reminder(
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    minutes: int,
    reminder_type: str = "manual",
    now: Optional[datetime] = None,
) -> Reminder:
    now = now or datetime.now()
    return Reminder(
        roadmap_id=roadmap_id,
        module_index=module_index,
        topic_index=topic_index,
        minutes=minutes,
        type=reminder_type,
        start_time=now,
        expiry_time=now + timedelta(minutes=minutes),
        active=True,
    )


def time_remaining(reminder: Optional[Reminder], now: datetime) -> Tuple[int, int, int]:
    """Return (minutes, seconds, total milliseconds) left, never negative."""
    if reminder is None:
        return 0, 0, 0
    total_ms = max(0, int((reminder.expiry_time - now).total_seconds() * 1000))
    minutes = total_ms // 60000
    seconds = (total_ms % 60000) // 1000
    return minutes, seconds, total_ms


def format_time_remaining(reminder: Optional[Reminder], now: datetime) -> str:
    minutes, seconds, _ = time_remaining(reminder, now)
    return f"{minutes:02d}:{seconds:02d}"


def reminder_state(reminder: Optional[Reminder], now: datetime) -> Optional[ReminderState]:
    """The reminder as a client should see it.

    An expired reminder that is still active is reported with ``expired``;
    one that was already processed is gone (None).
    """
    if reminder is None:
        return None
    expired = reminder.expiry_time < now
    if expired and not reminder.active:
        return None
    return ReminderState(
        **reminder.model_dump(),
        expired=expired,
        remaining=format_time_remaining(reminder, now),
    )


def build_notification(
    user_id: str,
    title: str,
    message: str,
    notification_type: str = "info",
    **extra,
) -> Notification:
    return Notification(user_id=user_id, title=title, message=message, type=notification_type, **extra)


def check_expiry(user_id: str, reminder: Optional[Reminder], now: datetime) -> Optional[Notification]:
    """
    Deactivate an expired reminder.

    Returns the "time to learn" notification when the reminder has just
    expired, None when there is nothing to fire.
    """
    if reminder is None or not reminder.active or reminder.expiry_time >= now:
        return None

    reminder.active = False
    return build_notification(
        user_id,
        "Learning Reminder",
        "It's time for your next lesson on your learning roadmap.",
        "timer",
        url=(
            f"/roadmaps/{reminder.roadmap_id}/learning"
            f"?module={reminder.module_index}&topic={reminder.topic_index}"
        ),
        roadmap_id=reminder.roadmap_id,
        module_index=reminder.module_index,
        topic_index=reminder.topic_index,
    )


def push_history(history: List[Dict], reminder: Reminder, now: datetime) -> List[Dict]:
    """Prepend a finished reminder, keeping the newest HISTORY_LIMIT entries."""
    entry = reminder.model_copy(update={"completed_at": now}).model_dump(mode="json")
    return ([entry] + list(history))[:HISTORY_LIMIT]


def mark_read(notifications: List[Notification], notification_id: str) -> Optional[Notification]:
    for notification in notifications:
        if notification.id == notification_id:
            notification.read = True
            return notification
    return None


def unread_count(notifications: List[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)
