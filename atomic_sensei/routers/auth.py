"""API router for registration and login."""
from datetime import datetime

from fastapi import APIRouter, HTTPException, status

from atomic_sensei.auth import generate_token, hash_password, verify_password
from atomic_sensei.learning_db import find_user_by_email_db, save_user_db
from atomic_sensei.models.roadmap import new_id
from atomic_sensei.models.user import (
    AuthResponse,
    LearningPreferences,
    LoginRequest,
    RegisterRequest,
    User,
)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _auth_response(user: User) -> AuthResponse:
    token = generate_token(user.id, user.name, user.email)
    return AuthResponse(**user.public().model_dump(), token=token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest):
    """Create an account and return it with a fresh token."""
    if await find_user_by_email_db(request.email):
        raise HTTPException(status_code=400, detail="User already exists")

    try:
        user = User(
            id=new_id(),
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            age=request.age,
            education_level=request.education_level,
            learning_preferences=request.learning_preferences or LearningPreferences(),
        )
        await save_user_db(user)
        print(f"[Auth] Registered user {user.id} ({user.email})")
        return _auth_response(user)
    except Exception as e:
        print(f"[Auth] Registration failed: {e}")
        raise HTTPException(status_code=500, detail=f"Server error: {str(e)}")


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest):
    user = await find_user_by_email_db(request.email)
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user.last_active = datetime.now()
    await save_user_db(user)
    print(f"[Auth] Login for user {user.id}")
    return _auth_response(user)
