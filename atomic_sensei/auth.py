"""JWT bearer authentication and password hashing for FastAPI."""
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import os

import bcrypt
import jwt
from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

load_dotenv(dotenv_path=Path(__file__).parent / ".env")

security = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"
_DEV_SECRET = "atomic-sensei-dev-secret"


def _jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        print("[Auth] JWT_SECRET not set, using development secret")
        return _DEV_SECRET
    return secret


def _token_lifetime() -> timedelta:
    return timedelta(days=int(os.getenv("JWT_EXPIRES_DAYS", "30")))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_token(user_id: str, name: str, email: str) -> str:
    """Sign a token carrying the user's id, name and email."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "name": name,
        "email": email,
        "iat": now,
        "exp": now + _token_lifetime(),
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode a token.

    Raises:
        ValueError: If the token is malformed, tampered with or expired
    """
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        raise ValueError("Invalid token") from e


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """Verify the bearer token and return the user ID."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
