"""Quizzes, questions and graded results."""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from .roadmap import new_id

QuestionType = Literal["multiple-choice", "true-false", "short-answer"]


class QuestionOption(BaseModel):
    id: str
    text: str
    is_correct: bool = False


class Question(BaseModel):
    id: str = Field(default_factory=new_id)
    question_text: str
    question_type: QuestionType = "multiple-choice"
    options: List[QuestionOption] = Field(default_factory=list)
    correct_answer: Optional[str] = None  # true-false and short-answer
    explanation: str = ""
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    points_value: float = 1


class Quiz(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    roadmap_id: str
    module_index: int
    topic_index: int
    subtopic_index: Optional[int] = None
    topic_id: Optional[str] = None
    content_id: Optional[str] = None
    title: str
    description: str = ""
    questions: List[Question] = Field(default_factory=list)
    time_limit: int = 5  # minutes
    passing_score: int = 70  # percentage
    is_review: bool = False
    ai_generated: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class QuestionResult(BaseModel):
    question_id: str
    user_answer: Any = None
    is_correct: bool
    points_earned: float = 0
    answer_time: int = 0  # seconds
    feedback: Optional[str] = None


class QuizResult(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    quiz_id: str
    roadmap_id: str
    content_id: Optional[str] = None
    question_results: List[QuestionResult] = Field(default_factory=list)
    total_score: float
    percentage_score: int
    passed: bool
    completion_time: int = 0  # seconds
    review_needed: bool = False
    concepts_to_review: List[str] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=datetime.now)


# ============================================
# Request / Response Models
# ============================================

class GenerateQuizRequest(BaseModel):
    roadmap_id: str
    module_index: int
    topic_index: int
    subtopic_index: Optional[int] = None
    content_id: Optional[str] = None


class SubmitQuizRequest(BaseModel):
    answers: List[Any]
    completion_time: int = 0


class NextDeliveryDto(BaseModel):
    timestamp: datetime
    interval_minutes: int
    is_review: bool
    reason: str


class SubmitQuizResponse(BaseModel):
    quiz_result: QuizResult
    next_delivery: NextDeliveryDto
