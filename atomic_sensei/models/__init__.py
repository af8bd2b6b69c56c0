from .user import (
    User,
    UserPublic,
    LearningPreferences,
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    ProfileUpdateRequest,
    PasswordUpdateRequest,
)
from .roadmap import Roadmap, Module, Topic, Subtopic, LearningUnit
from .content import Content
from .quiz import Quiz, Question, QuestionOption, QuizResult, QuestionResult
from .timer import Timer, Reminder, Notification
