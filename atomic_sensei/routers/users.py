"""API router for the user profile and in-app notifications."""
from fastapi import APIRouter, Depends, HTTPException, status

from atomic_sensei.auth import get_current_user, hash_password, verify_password
from atomic_sensei.learning_db import (
    clear_notifications_db,
    get_user_db,
    list_notifications_db,
    save_notification_db,
    save_user_db,
)
from atomic_sensei.models.timer import CreateNotificationRequest, Notification, NotificationListResponse
from atomic_sensei.models.user import PasswordUpdateRequest, ProfileUpdateRequest, User, UserPublic
from atomic_sensei.services.reminder_service import build_notification, mark_read, unread_count

router = APIRouter(prefix="/api/users", tags=["Users"])


async def load_user_or_404(user_id: str) -> User:
    user = await get_user_db(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/profile", response_model=UserPublic)
async def get_profile(user_id: str = Depends(get_current_user)):
    user = await load_user_or_404(user_id)
    return user.public()


@router.put("/profile", response_model=UserPublic)
async def update_profile(request: ProfileUpdateRequest, user_id: str = Depends(get_current_user)):
    """Partial update: only the fields present in the body change."""
    user = await load_user_or_404(user_id)

    if request.name is not None:
        user.name = request.name.strip() or user.name
    if request.age is not None:
        user.age = request.age
    if request.education_level is not None:
        user.education_level = request.education_level
    if request.learning_preferences is not None:
        changes = request.learning_preferences.model_dump(exclude_none=True)
        user.learning_preferences = user.learning_preferences.model_copy(update=changes)

    await save_user_db(user)
    print(f"[Users] Updated profile for {user_id}")
    return user.public()


@router.put("/password")
async def update_password(request: PasswordUpdateRequest, user_id: str = Depends(get_current_user)):
    user = await load_user_or_404(user_id)
    if not verify_password(request.current_password, user.password_hash):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    user.password_hash = hash_password(request.new_password)
    await save_user_db(user)
    print(f"[Users] Password changed for {user_id}")
    return {"message": "Password updated successfully"}


# ============================================
# Notifications
# ============================================

@router.get("/notifications", response_model=NotificationListResponse)
async def get_notifications(user_id: str = Depends(get_current_user)):
    notifications = await list_notifications_db(user_id)
    return NotificationListResponse(notifications=notifications, unread_count=unread_count(notifications))


@router.post("/notifications", response_model=Notification, status_code=status.HTTP_201_CREATED)
async def create_notification(request: CreateNotificationRequest, user_id: str = Depends(get_current_user)):
    extra = request.model_dump(exclude={"title", "message", "type"})
    notification = build_notification(user_id, request.title, request.message, request.type, **extra)
    return await save_notification_db(notification)


@router.put("/notifications/{notification_id}/read", response_model=Notification)
async def read_notification(notification_id: str, user_id: str = Depends(get_current_user)):
    notifications = await list_notifications_db(user_id)
    notification = mark_read(notifications, notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return await save_notification_db(notification)


@router.delete("/notifications")
async def clear_notifications(user_id: str = Depends(get_current_user)):
    removed = await clear_notifications_db(user_id)
    print(f"[Users] Cleared {removed} notifications for {user_id}")
    return {"message": "Notifications cleared", "removed": removed}
