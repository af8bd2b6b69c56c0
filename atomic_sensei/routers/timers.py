"""API router for delivery timers and the learner's reminder countdown."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from atomic_sensei.auth import get_current_user
from atomic_sensei.learning_db import (
    delete_timer_db,
    find_content_db,
    find_quiz_db,
    get_roadmap_db,
    get_timer_db,
    get_user_db,
    list_timers_db,
    load_reminders_db,
    save_notification_db,
    save_reminders_db,
    save_timer_db,
)
from atomic_sensei.models.timer import (
    Reminder,
    ReminderState,
    SetReminderRequest,
    SnoozeRequest,
    Timer,
    TimerSuggestionRequest,
    TimerSuggestionResponse,
)
from atomic_sensei.routers.roadmaps import load_roadmap_or_404
from atomic_sensei.services.generation_service import learning_context, suggest_timer, user_profile
from atomic_sensei.services.llm_client import LLMClient, get_llm_client
from atomic_sensei.services.progress_service import UnitNotFoundError, current_learning_unit, find_unit
from atomic_sensei.services.reminder_service import check_expiry, create_reminder, push_history, reminder_state
from atomic_sensei.services.scheduler_service import mark_delivered, mark_notified, select_active, select_due, snooze

router = APIRouter(prefix="/api/timers", tags=["Timers"])


@router.get("/active", response_model=List[Timer])
async def get_active_timers(user_id: str = Depends(get_current_user)):
    return select_active(await list_timers_db(user_id))


@router.get("/next")
async def get_next_delivery(user_id: str = Depends(get_current_user)):
    """
    The earliest due delivery with its lesson and quiz.

    Reviews point at the unit stored on the timer; anything else delivers
    the roadmap's current unit. When that unit has no lesson yet the
    client is told to generate it and the timer is left untouched.
    """
    now = datetime.now()
    due = select_due(await list_timers_db(user_id), now)
    if not due:
        return {"message": "No content ready for delivery"}
    timer = due[0]

    roadmap = await get_roadmap_db(timer.roadmap_id, user_id)
    if not roadmap:
        raise HTTPException(status_code=404, detail="Roadmap not found")

    if timer.is_review and timer.module_index is not None and timer.topic_index is not None:
        module_index, topic_index, subtopic_index = timer.module_index, timer.topic_index, timer.subtopic_index
    else:
        unit = current_learning_unit(roadmap)
        if unit is None:
            raise HTTPException(status_code=404, detail="Topic not found in module")
        module_index, topic_index, subtopic_index = unit.module_index, unit.topic_index, unit.subtopic_index

    try:
        module, topic, _ = find_unit(roadmap, module_index, topic_index, subtopic_index)
    except UnitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    unit_info = {
        "roadmap": {"id": roadmap.id, "title": roadmap.title},
        "module": {"id": module.id, "title": module.title, "order": module.order, "index": module_index},
        "topic": {
            "id": topic.id,
            "title": topic.title,
            "description": topic.description,
            "order": topic.order,
            "index": topic_index,
        },
        "subtopic_index": subtopic_index,
    }

    content = await find_content_db(user_id, roadmap.id, module_index, topic_index, subtopic_index)
    if not content:
        return {"message": "Content needs to be generated", "timer": timer, **unit_info}

    quiz = await find_quiz_db(user_id, roadmap.id, module_index, topic_index, subtopic_index)
    mark_notified(timer, now)
    await save_timer_db(timer)

    return {"timer": timer, "content": content, "quiz": quiz, "is_review": timer.is_review, **unit_info}


@router.post("/suggest", response_model=TimerSuggestionResponse)
async def suggest_interval(
    request: TimerSuggestionRequest,
    user_id: str = Depends(get_current_user),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    """Ask the AI how long the learner should wait before the next lesson."""
    learning_data = {}
    if request.roadmap_id:
        roadmap = await load_roadmap_or_404(request.roadmap_id, user_id)
        module_index = request.module_index if request.module_index is not None else roadmap.current_module
        topic_index = request.topic_index if request.topic_index is not None else roadmap.current_topic
        try:
            learning_data = learning_context(roadmap, module_index, topic_index)
        except UnitNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
    if request.last_score is not None:
        learning_data["last_score"] = request.last_score

    user = await get_user_db(user_id)
    suggestion = await suggest_timer(llm, user_profile(user), learning_data)
    return TimerSuggestionResponse(**suggestion)


# ============================================
# Reminder countdown
# ============================================

def _current_reminder(state: dict) -> Optional[Reminder]:
    return Reminder(**state["current"]) if state["current"] else None


@router.get("/reminder", response_model=Optional[ReminderState])
async def get_reminder(user_id: str = Depends(get_current_user)):
    state = await load_reminders_db(user_id)
    return reminder_state(_current_reminder(state), datetime.now())


@router.post("/reminder", response_model=ReminderState, status_code=status.HTTP_201_CREATED)
async def set_reminder(request: SetReminderRequest, user_id: str = Depends(get_current_user)):
    """Start a countdown, replacing any reminder already running."""
    await load_roadmap_or_404(request.roadmap_id, user_id)

    now = datetime.now()
    reminder = create_reminder(
        request.roadmap_id,
        request.module_index,
        request.topic_index,
        request.minutes,
        reminder_type=request.type,
        now=now,
    )
    state = await load_reminders_db(user_id)
    await save_reminders_db(user_id, reminder.model_dump(mode="json"), state["history"])
    print(f"[Timers] Reminder set for {user_id}: {request.minutes} min ({request.type})")
    return reminder_state(reminder, now)


@router.delete("/reminder")
async def clear_reminder(user_id: str = Depends(get_current_user)):
    state = await load_reminders_db(user_id)
    reminder = _current_reminder(state)
    if reminder is None:
        raise HTTPException(status_code=404, detail="No active reminder")

    history = push_history(state["history"], reminder, datetime.now())
    await save_reminders_db(user_id, None, history)
    return {"message": "Reminder cleared"}


@router.post("/reminder/check")
async def check_reminder(user_id: str = Depends(get_current_user)):
    """Fire the reminder if it has run out: store a notification and archive it."""
    now = datetime.now()
    state = await load_reminders_db(user_id)
    reminder = _current_reminder(state)

    notification = check_expiry(user_id, reminder, now)
    if notification is None:
        return {"fired": False, "notification": None, "reminder": reminder_state(reminder, now)}

    await save_notification_db(notification)
    await save_reminders_db(user_id, None, push_history(state["history"], reminder, now))
    print(f"[Timers] Reminder fired for {user_id} on roadmap {reminder.roadmap_id}")
    return {"fired": True, "notification": notification, "reminder": None}


@router.get("/reminder/history", response_model=List[Reminder])
async def get_reminder_history(user_id: str = Depends(get_current_user)):
    state = await load_reminders_db(user_id)
    return [Reminder(**entry) for entry in state["history"]]


# ============================================
# Individual timers
# ============================================

async def _load_timer_or_404(timer_id: str, user_id: str) -> Timer:
    timer = await get_timer_db(timer_id, user_id)
    if not timer:
        raise HTTPException(status_code=404, detail="Timer not found")
    return timer


@router.put("/{timer_id}/delivered")
async def mark_timer_delivered(timer_id: str, user_id: str = Depends(get_current_user)):
    timer = await _load_timer_or_404(timer_id, user_id)
    mark_delivered(timer, datetime.now())
    await save_timer_db(timer)
    return {"message": "Timer marked as delivered", "timer": timer}


@router.put("/{timer_id}/snooze")
async def snooze_timer(timer_id: str, request: SnoozeRequest, user_id: str = Depends(get_current_user)):
    if request.snooze_minutes is None or request.snooze_minutes < 1:
        raise HTTPException(status_code=400, detail="Invalid snooze time")

    timer = await _load_timer_or_404(timer_id, user_id)
    snooze(timer, request.snooze_minutes)
    await save_timer_db(timer)
    print(f"[Timers] Timer {timer_id} snoozed {request.snooze_minutes} min")
    return {"message": "Timer snoozed", "timer": timer, "next_delivery": timer.next_content_delivery}


@router.delete("/{timer_id}")
async def delete_timer(timer_id: str, user_id: str = Depends(get_current_user)):
    timer = await delete_timer_db(timer_id, user_id)
    if not timer:
        raise HTTPException(status_code=404, detail="Timer not found")
    return {"message": "Timer deleted"}
