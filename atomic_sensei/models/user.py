"""User accounts and learning preferences."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

EducationLevel = Literal["primary", "middle", "high", "undergraduate", "graduate", "other"]
ContentType = Literal["text", "video", "mixed"]


class LearningPreferences(BaseModel):
    preferred_content_type: ContentType = "mixed"
    preferred_theme: str = "default"
    is_gamification_enabled: bool = True
    preferred_learning_time: int = Field(default=10, ge=5, le=60)  # minutes per session


class User(BaseModel):
    """Stored user document. ``password_hash`` never leaves the API."""
    id: str
    name: str
    email: str
    password_hash: str
    age: Optional[int] = Field(default=None, ge=5, le=100)
    education_level: EducationLevel = "other"
    learning_preferences: LearningPreferences = Field(default_factory=LearningPreferences)
    created_at: datetime = Field(default_factory=datetime.now)
    last_active: datetime = Field(default_factory=datetime.now)

    def public(self) -> "UserPublic":
        return UserPublic(**self.model_dump(exclude={"password_hash"}))


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    age: Optional[int] = None
    education_level: EducationLevel = "other"
    learning_preferences: LearningPreferences
    created_at: datetime
    last_active: datetime


# ============================================
# Request / Response Models
# ============================================

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=6)
    age: Optional[int] = Field(default=None, ge=5, le=100)
    education_level: EducationLevel = "other"
    learning_preferences: Optional[LearningPreferences] = None

    @field_validator("name", "email")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("A valid email address is required")
        return v.lower()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Ada",
                "email": "ada@example.com",
                "password": "secret123",
                "age": 24,
                "education_level": "undergraduate",
                "learning_preferences": {"preferred_content_type": "text", "preferred_learning_time": 15},
            }
        }


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.strip().lower()


class AuthResponse(UserPublic):
    token: str


class PreferencesUpdate(BaseModel):
    preferred_content_type: Optional[ContentType] = None
    preferred_theme: Optional[str] = None
    is_gamification_enabled: Optional[bool] = None
    preferred_learning_time: Optional[int] = Field(default=None, ge=5, le=60)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=5, le=100)
    education_level: Optional[EducationLevel] = None
    learning_preferences: Optional[PreferencesUpdate] = None


class PasswordUpdateRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
