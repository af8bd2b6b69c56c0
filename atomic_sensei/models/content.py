"""Lesson content tied to a roadmap coordinate."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .roadmap import new_id

Difficulty = Literal["beginner", "intermediate", "advanced"]


class Content(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    roadmap_id: str
    module_index: int
    topic_index: int
    subtopic_index: Optional[int] = None
    title: str
    description: str = ""
    type: Literal["text", "video", "mixed"] = "text"
    text_content: Optional[str] = None
    video_url: Optional[str] = None
    video_start_time: Optional[float] = None
    video_end_time: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    estimated_time_minutes: int = 10
    difficulty: Difficulty = "beginner"
    word_count: int = 0
    reading_time_minutes: int = 0
    ai_generated: bool = True
    placeholder: bool = False
    view_count: int = 0
    last_viewed: Optional[datetime] = None
    related_quiz_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class GenerateContentRequest(BaseModel):
    roadmap_id: str
    module_index: int
    topic_index: int
    subtopic_index: Optional[int] = None


class UpdateContentRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[Literal["text", "video", "mixed"]] = None
    text_content: Optional[str] = None
    video_url: Optional[str] = None
    video_start_time: Optional[float] = None
    video_end_time: Optional[float] = None
    tags: Optional[List[str]] = None
    estimated_time_minutes: Optional[int] = None
    difficulty: Optional[Difficulty] = None
