"""Roadmap documents: modules -> topics -> subtopics."""
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


def new_id() -> str:
    return uuid.uuid4().hex


# ============================================
# Curriculum Tree
# ============================================

class Subtopic(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    content_id: Optional[str] = None
    quiz_id: Optional[str] = None


class Topic(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str
    order: int = 0
    estimated_time_minutes: int = 10
    completed: bool = False
    completed_at: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    review_count: int = 0
    content_id: Optional[str] = None
    quiz_id: Optional[str] = None
    subtopics: List[Subtopic] = Field(default_factory=list)


class Module(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str
    order: int = 0
    topics: List[Topic] = Field(default_factory=list)
    completed: bool = False
    completed_at: Optional[datetime] = None


class Roadmap(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    title: str
    description: str
    goal: str
    modules: List[Module] = Field(default_factory=list)
    progress: int = 0  # percentage 0-100
    active: bool = True
    current_module: int = 0
    current_topic: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "5f2b0c3e9a0d4c6f8e1a2b3c4d5e6f70",
                "user_id": "a1b2c3",
                "title": "Python from Zero",
                "description": "Short daily lessons towards writing real programs",
                "goal": "Learn Python for data analysis",
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
                                "estimated_time_minutes": 10,
                                "subtopics": [{"title": "Assignment", "description": "The = operator"}],
                            }
                        ],
                    }
                ],
                "progress": 0,
                "current_module": 0,
                "current_topic": 0,
            }
        }


# ============================================
# Request / Response Models
# ============================================

class CreateRoadmapRequest(BaseModel):
    goal: Optional[str] = None


class TopicProgressRequest(BaseModel):
    module_index: int
    topic_index: int
    completed: bool


class SubtopicProgressRequest(BaseModel):
    module_index: int
    topic_index: int
    subtopic_index: int
    completed: bool


class ProgressUpdateResponse(BaseModel):
    message: str
    roadmap: Roadmap


class LearningUnit(BaseModel):
    module_index: int
    topic_index: int
    subtopic_index: Optional[int] = None


class ModuleProgressDto(BaseModel):
    index: int
    title: str
    completed: bool
    completed_topics: int
    total_topics: int


class RoadmapProgressResponse(BaseModel):
    roadmap_id: str
    progress: int
    completed_topics: int
    total_topics: int
    current_module: int
    current_topic: int
    completed_at: Optional[datetime] = None
    next_unit: Optional[LearningUnit] = None
    modules: List[ModuleProgressDto]
