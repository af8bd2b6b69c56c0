"""API router for quizzes, submissions and the follow-up delivery schedule."""
from datetime import datetime
from functools import partial
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from atomic_sensei.auth import get_current_user
from atomic_sensei.learning_db import (
    find_content_db,
    find_quiz_db,
    get_content_db,
    get_quiz_db,
    get_user_db,
    list_quiz_results_db,
    save_content_db,
    save_quiz_db,
    save_quiz_result_db,
    save_roadmap_db,
    save_timer_db,
)
from atomic_sensei.models.quiz import (
    GenerateQuizRequest,
    NextDeliveryDto,
    Quiz,
    QuizResult,
    SubmitQuizRequest,
    SubmitQuizResponse,
)
from atomic_sensei.models.timer import Timer
from atomic_sensei.routers.roadmaps import load_roadmap_or_404
from atomic_sensei.services.generation_service import (
    calculate_next_delivery,
    evaluate_answer,
    generate_quiz,
    learning_context,
    user_profile,
)
from atomic_sensei.services.llm_client import LLMClient, get_llm_client
from atomic_sensei.services.progress_service import (
    UnitNotFoundError,
    find_unit,
    link_unit,
    next_learning_unit,
    set_subtopic_completion,
    set_topic_completion,
    update_review_schedule,
)
from atomic_sensei.services.quiz_service import grade_submission
from atomic_sensei.services.scheduler_service import next_delivery_time

router = APIRouter(prefix="/api/quizzes", tags=["Quizzes"])


@router.post("/generate", response_model=Quiz, status_code=status.HTTP_201_CREATED)
async def generate(
    request: GenerateQuizRequest,
    response: Response,
    user_id: str = Depends(get_current_user),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    """Return the quiz for a unit, generating it from the unit's lesson on first request."""
    roadmap = await load_roadmap_or_404(request.roadmap_id, user_id)
    try:
        _, topic, _ = find_unit(roadmap, request.module_index, request.topic_index, request.subtopic_index)
    except UnitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    existing = await find_quiz_db(
        user_id, roadmap.id, request.module_index, request.topic_index, request.subtopic_index
    )
    if existing:
        response.status_code = status.HTTP_200_OK
        return existing

    if request.content_id:
        content = await get_content_db(request.content_id, user_id)
    else:
        content = await find_content_db(
            user_id, roadmap.id, request.module_index, request.topic_index, request.subtopic_index
        )

    learning_data = learning_context(
        roadmap,
        request.module_index,
        request.topic_index,
        request.subtopic_index,
        content_text=content.text_content if content else None,
    )
    user = await get_user_db(user_id)
    generated = await generate_quiz(llm, learning_data, user_profile(user))

    quiz = Quiz(
        user_id=user_id,
        roadmap_id=roadmap.id,
        module_index=request.module_index,
        topic_index=request.topic_index,
        subtopic_index=request.subtopic_index,
        topic_id=topic.id,
        content_id=content.id if content else None,
        **generated,
    )
    await save_quiz_db(quiz)

    link_unit(roadmap, request.module_index, request.topic_index, request.subtopic_index, quiz_id=quiz.id)
    await save_roadmap_db(roadmap)
    if content:
        content.related_quiz_id = quiz.id
        await save_content_db(content)

    print(f"[Quizzes] Created quiz {quiz.id} with {len(quiz.questions)} questions")
    return quiz


@router.get("/roadmap/{roadmap_id}/module/{module_index}/topic/{topic_index}", response_model=Quiz)
async def get_topic_quiz(
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    user_id: str = Depends(get_current_user),
):
    quiz = await find_quiz_db(user_id, roadmap_id, module_index, topic_index)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.get(
    "/roadmap/{roadmap_id}/module/{module_index}/topic/{topic_index}/subtopic/{subtopic_index}",
    response_model=Quiz,
)
async def get_subtopic_quiz(
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    subtopic_index: int,
    user_id: str = Depends(get_current_user),
):
    quiz = await find_quiz_db(user_id, roadmap_id, module_index, topic_index, subtopic_index)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.get("/results/{quiz_id}", response_model=List[QuizResult])
async def get_results(quiz_id: str, user_id: str = Depends(get_current_user)):
    return await list_quiz_results_db(quiz_id, user_id)


@router.get("/{quiz_id}", response_model=Quiz)
async def get_quiz(quiz_id: str, user_id: str = Depends(get_current_user)):
    quiz = await get_quiz_db(quiz_id, user_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.post("/{quiz_id}/submit", response_model=SubmitQuizResponse)
async def submit_quiz(
    quiz_id: str,
    request: SubmitQuizRequest,
    user_id: str = Depends(get_current_user),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    """
    Grade a submission and plan the next delivery.

    A passed quiz completes its unit; every submission schedules a Timer
    and pushes back the topic's next review date.
    """
    quiz = await get_quiz_db(quiz_id, user_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    roadmap = await load_roadmap_or_404(quiz.roadmap_id, user_id)

    try:
        result = await grade_submission(
            quiz, request.answers, request.completion_time, partial(evaluate_answer, llm)
        )
        await save_quiz_result_db(result)
    except Exception as e:
        print(f"[Quizzes] Grading failed for quiz {quiz_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Server error: {str(e)}")

    try:
        _, topic, _ = find_unit(roadmap, quiz.module_index, quiz.topic_index, quiz.subtopic_index)
    except UnitNotFoundError as e:
        # The roadmap no longer has this unit; the result is still recorded
        print(f"[Quizzes] Quiz {quiz_id} points at a missing unit: {e}")
        topic = None

    if topic is not None and result.passed:
        if quiz.subtopic_index is not None:
            set_subtopic_completion(roadmap, quiz.module_index, quiz.topic_index, quiz.subtopic_index, True)
        else:
            set_topic_completion(roadmap, quiz.module_index, quiz.topic_index, True)

    learning_data = (
        learning_context(roadmap, quiz.module_index, quiz.topic_index, quiz.subtopic_index)
        if topic is not None else {"topic_title": quiz.title}
    )
    user = await get_user_db(user_id)
    schedule = await calculate_next_delivery(
        llm,
        user_profile(user),
        learning_data,
        result.model_dump(mode="json", exclude={"question_results"}),
        review_count=topic.review_count if topic is not None else 0,
    )

    now = datetime.now()
    delivery_at = next_delivery_time(now, schedule["interval_minutes"])

    if schedule["is_review"] or topic is None:
        module_index, topic_index, subtopic_index = quiz.module_index, quiz.topic_index, quiz.subtopic_index
    else:
        unit = next_learning_unit(roadmap, quiz.module_index, quiz.topic_index, quiz.subtopic_index)
        module_index, topic_index, subtopic_index = unit.module_index, unit.topic_index, unit.subtopic_index

    timer = Timer(
        user_id=user_id,
        roadmap_id=roadmap.id,
        module_index=module_index,
        topic_index=topic_index,
        subtopic_index=subtopic_index,
        content_id=quiz.content_id if schedule["is_review"] else None,
        next_content_delivery=delivery_at,
        is_review=schedule["is_review"],
        interval=schedule["interval_minutes"],
        reason=schedule["reason"],
    )
    await save_timer_db(timer)

    if topic is not None:
        update_review_schedule(topic, delivery_at)
        await save_roadmap_db(roadmap)

    print(
        f"[Quizzes] Quiz {quiz_id} scored {result.percentage_score}% (passed={result.passed}), "
        f"next delivery in {schedule['interval_minutes']} min"
    )
    return SubmitQuizResponse(
        quiz_result=result,
        next_delivery=NextDeliveryDto(
            timestamp=delivery_at,
            interval_minutes=schedule["interval_minutes"],
            is_review=schedule["is_review"],
            reason=schedule["reason"],
        ),
    )
