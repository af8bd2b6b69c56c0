"""API router for lesson content."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from atomic_sensei.auth import get_current_user
from atomic_sensei.learning_db import (
    delete_content_db,
    find_content_db,
    get_content_db,
    get_roadmap_db,
    get_user_db,
    save_content_db,
    save_roadmap_db,
)
from atomic_sensei.models.content import Content, GenerateContentRequest, UpdateContentRequest
from atomic_sensei.routers.roadmaps import load_roadmap_or_404
from atomic_sensei.services.generation_service import (
    AIResponseError,
    generate_content,
    learning_context,
    placeholder_content,
    reading_stats,
    user_profile,
)
from atomic_sensei.services.llm_client import LLMClient, get_llm_client
from atomic_sensei.services.progress_service import UnitNotFoundError, link_unit, unlink_content

router = APIRouter(prefix="/api/content", tags=["Content"])


@router.post("/generate", response_model=Content, status_code=status.HTTP_201_CREATED)
async def generate(
    request: GenerateContentRequest,
    response: Response,
    user_id: str = Depends(get_current_user),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    """
    Return the lesson for a unit, generating it on first request.

    When the AI provider fails a placeholder lesson is returned instead; it
    is not stored so the next request tries again.
    """
    roadmap = await load_roadmap_or_404(request.roadmap_id, user_id)
    try:
        learning_data = learning_context(
            roadmap, request.module_index, request.topic_index, request.subtopic_index
        )
    except UnitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    existing = await find_content_db(
        user_id, roadmap.id, request.module_index, request.topic_index, request.subtopic_index
    )
    if existing:
        print(f"[Content] Returning stored content {existing.id}")
        response.status_code = status.HTTP_200_OK
        return existing

    user = await get_user_db(user_id)
    coordinate = request.model_dump()
    try:
        generated = await generate_content(llm, learning_data, user_profile(user))
    except AIResponseError as e:
        print(f"[Content] Generation failed, serving placeholder: {e}")
        response.status_code = status.HTTP_200_OK
        fallback = placeholder_content(learning_data)
        fallback.pop("generated_at")
        return Content(
            user_id=user_id,
            **coordinate,
            **fallback,
            estimated_time_minutes=learning_data["estimated_time_minutes"],
            ai_generated=False,
            placeholder=True,
        )

    generated.pop("generated_at")
    content = Content(
        user_id=user_id,
        **coordinate,
        **generated,
        estimated_time_minutes=learning_data["estimated_time_minutes"],
        tags=[learning_data["module_title"], learning_data["topic_title"]],
    )
    await save_content_db(content)

    link_unit(roadmap, request.module_index, request.topic_index, request.subtopic_index, content_id=content.id)
    await save_roadmap_db(roadmap)
    print(f"[Content] Generated content {content.id} ({content.word_count} words)")
    return content


async def _view_unit_content(
    user_id: str,
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
) -> Content:
    content = await find_content_db(user_id, roadmap_id, module_index, topic_index, subtopic_index)
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")

    content.view_count += 1
    content.last_viewed = datetime.now()
    return await save_content_db(content)


@router.get("/roadmap/{roadmap_id}/module/{module_index}/topic/{topic_index}", response_model=Content)
async def get_topic_content(
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    user_id: str = Depends(get_current_user),
):
    return await _view_unit_content(user_id, roadmap_id, module_index, topic_index)


@router.get(
    "/roadmap/{roadmap_id}/module/{module_index}/topic/{topic_index}/subtopic/{subtopic_index}",
    response_model=Content,
)
async def get_subtopic_content(
    roadmap_id: str,
    module_index: int,
    topic_index: int,
    subtopic_index: int,
    user_id: str = Depends(get_current_user),
):
    return await _view_unit_content(user_id, roadmap_id, module_index, topic_index, subtopic_index)


async def _load_content_or_404(content_id: str, user_id: str) -> Content:
    content = await get_content_db(content_id, user_id)
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


@router.get("/{content_id}", response_model=Content)
async def get_content(content_id: str, user_id: str = Depends(get_current_user)):
    return await _load_content_or_404(content_id, user_id)


@router.put("/{content_id}", response_model=Content)
async def update_content(
    content_id: str,
    request: UpdateContentRequest,
    user_id: str = Depends(get_current_user),
):
    """Manual edit. Edited content is no longer considered AI generated."""
    content = await _load_content_or_404(content_id, user_id)
    changes = request.model_dump(exclude_unset=True)
    if changes.get("text_content") is not None:
        changes.update(reading_stats(changes["text_content"]))

    content = content.model_copy(
        update={**changes, "ai_generated": False, "placeholder": False, "updated_at": datetime.now()}
    )
    return await save_content_db(content)


@router.delete("/{content_id}")
async def delete_content(content_id: str, user_id: str = Depends(get_current_user)):
    content = await delete_content_db(content_id, user_id)
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")

    roadmap = await get_roadmap_db(content.roadmap_id, user_id)
    if roadmap and unlink_content(roadmap, content_id):
        await save_roadmap_db(roadmap)
    print(f"[Content] Deleted content {content_id}")
    return {"message": "Content removed"}
