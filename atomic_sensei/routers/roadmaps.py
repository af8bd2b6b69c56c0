"""API router for AI-generated learning roadmaps and their progress."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from atomic_sensei.auth import get_current_user
from atomic_sensei.learning_db import (
    delete_roadmap_children_db,
    delete_roadmap_db,
    get_roadmap_db,
    get_user_db,
    list_roadmaps_db,
    save_roadmap_db,
)
from atomic_sensei.models.roadmap import (
    CreateRoadmapRequest,
    ModuleProgressDto,
    ProgressUpdateResponse,
    Roadmap,
    RoadmapProgressResponse,
    SubtopicProgressRequest,
    TopicProgressRequest,
)
from atomic_sensei.services.generation_service import AIResponseError, generate_roadmap, user_profile
from atomic_sensei.services.llm_client import LLMClient, get_llm_client
from atomic_sensei.services.progress_service import (
    UnitNotFoundError,
    count_topics,
    current_learning_unit,
    set_subtopic_completion,
    set_topic_completion,
)

router = APIRouter(prefix="/api/roadmaps", tags=["Roadmaps"])


async def load_roadmap_or_404(roadmap_id: str, user_id: str) -> Roadmap:
    roadmap = await get_roadmap_db(roadmap_id, user_id)
    if not roadmap:
        raise HTTPException(status_code=404, detail="Roadmap not found")
    return roadmap


@router.post("", response_model=Roadmap, status_code=status.HTTP_201_CREATED)
async def create_roadmap(
    request: CreateRoadmapRequest,
    user_id: str = Depends(get_current_user),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    """Generate a roadmap for the learner's goal and store it."""
    goal = (request.goal or "").strip()
    if not goal:
        raise HTTPException(status_code=400, detail="Learning goal is required")

    user = await get_user_db(user_id)
    user_data = {**user_profile(user), "goal": goal}

    try:
        generated = await generate_roadmap(llm, user_data)
    except AIResponseError as e:
        print(f"[Roadmaps] Generation failed for '{goal}': {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate roadmap: {str(e)}. Try again with a more specific learning goal.",
        )

    roadmap = Roadmap(user_id=user_id, goal=goal, **generated)
    await save_roadmap_db(roadmap)
    _, total = count_topics(roadmap)
    print(f"[Roadmaps] Created roadmap {roadmap.id} with {len(roadmap.modules)} modules, {total} topics")
    return roadmap


@router.get("", response_model=List[Roadmap])
async def list_roadmaps(user_id: str = Depends(get_current_user)):
    return await list_roadmaps_db(user_id)


@router.get("/{roadmap_id}", response_model=Roadmap)
async def get_roadmap(roadmap_id: str, user_id: str = Depends(get_current_user)):
    return await load_roadmap_or_404(roadmap_id, user_id)


@router.get("/{roadmap_id}/progress", response_model=RoadmapProgressResponse)
async def get_progress(roadmap_id: str, user_id: str = Depends(get_current_user)):
    """Progress summary with per-module counts and the unit to study next."""
    roadmap = await load_roadmap_or_404(roadmap_id, user_id)
    completed, total = count_topics(roadmap)

    return RoadmapProgressResponse(
        roadmap_id=roadmap.id,
        progress=roadmap.progress,
        completed_topics=completed,
        total_topics=total,
        current_module=roadmap.current_module,
        current_topic=roadmap.current_topic,
        completed_at=roadmap.completed_at,
        next_unit=current_learning_unit(roadmap),
        modules=[
            ModuleProgressDto(
                index=index,
                title=module.title,
                completed=module.completed,
                completed_topics=sum(1 for t in module.topics if t.completed),
                total_topics=len(module.topics),
            )
            for index, module in enumerate(roadmap.modules)
        ],
    )


@router.put("/{roadmap_id}/progress", response_model=ProgressUpdateResponse)
async def update_topic_progress(
    roadmap_id: str,
    request: TopicProgressRequest,
    user_id: str = Depends(get_current_user),
):
    roadmap = await load_roadmap_or_404(roadmap_id, user_id)
    try:
        set_topic_completion(roadmap, request.module_index, request.topic_index, request.completed)
    except UnitNotFoundError:
        raise HTTPException(status_code=400, detail="Invalid module or topic index")

    await save_roadmap_db(roadmap)
    print(
        f"[Roadmaps] Topic {request.module_index}.{request.topic_index} "
        f"completed={request.completed} -> progress {roadmap.progress}%"
    )
    return ProgressUpdateResponse(message="Progress updated", roadmap=roadmap)


@router.put("/{roadmap_id}/progress/subtopic", response_model=ProgressUpdateResponse)
async def update_subtopic_progress(
    roadmap_id: str,
    request: SubtopicProgressRequest,
    user_id: str = Depends(get_current_user),
):
    roadmap = await load_roadmap_or_404(roadmap_id, user_id)
    try:
        set_subtopic_completion(
            roadmap,
            request.module_index,
            request.topic_index,
            request.subtopic_index,
            request.completed,
        )
    except UnitNotFoundError:
        raise HTTPException(status_code=400, detail="Invalid module, topic, or subtopic index")

    await save_roadmap_db(roadmap)
    return ProgressUpdateResponse(message="Subtopic progress updated", roadmap=roadmap)


@router.delete("/{roadmap_id}")
async def delete_roadmap(roadmap_id: str, user_id: str = Depends(get_current_user)):
    roadmap = await delete_roadmap_db(roadmap_id, user_id)
    if not roadmap:
        raise HTTPException(status_code=404, detail="Roadmap not found")

    removed = await delete_roadmap_children_db(roadmap_id, user_id)
    print(f"[Roadmaps] Deleted roadmap {roadmap_id} and {removed} related documents")
    return {"message": "Roadmap removed"}
