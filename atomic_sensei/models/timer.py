"""Delivery timers, learning reminders and notifications."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .roadmap import new_id


class Timer(BaseModel):
    """Server-side schedule for the next content delivery."""
    id: str = Field(default_factory=new_id)
    user_id: str
    roadmap_id: str
    module_index: Optional[int] = None
    topic_index: Optional[int] = None
    subtopic_index: Optional[int] = None
    content_id: Optional[str] = None
    next_content_delivery: datetime
    is_review: bool = False
    notification_sent: bool = False
    notification_sent_at: Optional[datetime] = None
    content_delivered: bool = False
    content_delivered_at: Optional[datetime] = None
    active: bool = True
    interval: int = 60  # minutes
    reason: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class Reminder(BaseModel):
    """The user's single pending "time to learn" countdown."""
    roadmap_id: str
    module_index: int
    topic_index: int
    minutes: int
    type: Literal["manual", "ai"] = "manual"
    start_time: datetime
    expiry_time: datetime
    active: bool = True
    completed_at: Optional[datetime] = None


class ReminderState(Reminder):
    expired: bool = False
    remaining: str = "00:00"


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    title: str
    message: str
    type: str = "info"
    timestamp: datetime = Field(default_factory=datetime.now)
    read: bool = False
    url: Optional[str] = None
    roadmap_id: Optional[str] = None
    module_index: Optional[int] = None
    topic_index: Optional[int] = None


# ============================================
# Request / Response Models
# ============================================

class SnoozeRequest(BaseModel):
    snooze_minutes: Optional[int] = None


class SetReminderRequest(BaseModel):
    roadmap_id: str
    module_index: int = 0
    topic_index: int = 0
    minutes: int = Field(gt=0)
    type: Literal["manual", "ai"] = "manual"


class TimerSuggestionRequest(BaseModel):
    roadmap_id: Optional[str] = None
    module_index: Optional[int] = None
    topic_index: Optional[int] = None
    last_score: Optional[int] = None


class TimerSuggestionResponse(BaseModel):
    minutes: int
    reason: str


class CreateNotificationRequest(BaseModel):
    title: str
    message: str
    type: str = "info"
    url: Optional[str] = None
    roadmap_id: Optional[str] = None
    module_index: Optional[int] = None
    topic_index: Optional[int] = None


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
