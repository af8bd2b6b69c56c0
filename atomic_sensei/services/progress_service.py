"""Completion cascade, progress percentage and "next unit" pointer logic.

All functions mutate the Roadmap in place and return it; persistence is the
caller's job.
"""
import math
from datetime import datetime
from typing import Optional, Tuple

from atomic_sensei.models.roadmap import LearningUnit, Module, Roadmap, Subtopic, Topic


class UnitNotFoundError(ValueError):
    """A module/topic/subtopic index does not exist in the roadmap."""


def round_percent(value: float) -> int:
    """Round to the nearest integer, halves up (50.5 -> 51)."""
    return int(math.floor(value + 0.5))


def find_unit(
    roadmap: Roadmap,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
) -> Tuple[Module, Topic, Optional[Subtopic]]:
    """
    Resolve a coordinate to its module, topic and (optional) subtopic.

    Raises:
        UnitNotFoundError: Naming the first level that is missing
    """
    if not 0 <= module_index < len(roadmap.modules):
        raise UnitNotFoundError("Module not found")
    module = roadmap.modules[module_index]

    if not 0 <= topic_index < len(module.topics):
        raise UnitNotFoundError("Topic not found")
    topic = module.topics[topic_index]

    subtopic = None
    if subtopic_index is not None:
        if not 0 <= subtopic_index < len(topic.subtopics):
            raise UnitNotFoundError("Subtopic not found")
        subtopic = topic.subtopics[subtopic_index]
    return module, topic, subtopic


def count_topics(roadmap: Roadmap) -> Tuple[int, int]:
    """Return (completed, total) topic counts."""
    total = sum(len(m.topics) for m in roadmap.modules)
    completed = sum(1 for m in roadmap.modules for t in m.topics if t.completed)
    return completed, total


def calculate_progress(roadmap: Roadmap) -> int:
    completed, total = count_topics(roadmap)
    if total == 0:
        return 0
    return round_percent(completed / total * 100)


def _refresh_module(module: Module, now: datetime) -> None:
    all_done = bool(module.topics) and all(t.completed for t in module.topics)
    if all_done and not module.completed:
        module.completed_at = now
    elif not all_done:
        module.completed_at = None
    module.completed = all_done


def advance_position(roadmap: Roadmap, module_index: int, topic_index: int, now: datetime) -> Roadmap:
    """Move the current pointer past (module_index, topic_index).

    Modules without topics are skipped. Past the last module the pointer
    stays where it is and the roadmap is stamped as completed.
    """
    next_module, next_topic = module_index, topic_index + 1
    while next_module < len(roadmap.modules) and next_topic >= len(roadmap.modules[next_module].topics):
        next_module, next_topic = next_module + 1, 0

    if next_module < len(roadmap.modules):
        roadmap.current_module = next_module
        roadmap.current_topic = next_topic
    else:
        roadmap.completed_at = now
    return roadmap


def set_topic_completion(
    roadmap: Roadmap,
    module_index: int,
    topic_index: int,
    completed: bool,
    now: Optional[datetime] = None,
) -> Roadmap:
    """Mark a topic (in)complete and propagate to its module and the roadmap."""
    now = now or datetime.now()
    module, topic, _ = find_unit(roadmap, module_index, topic_index)

    topic.completed = completed
    topic.completed_at = now if completed else None
    _refresh_module(module, now)

    if completed:
        advance_position(roadmap, module_index, topic_index, now)
    else:
        roadmap.completed_at = None

    roadmap.progress = calculate_progress(roadmap)
    return roadmap


def set_subtopic_completion(
    roadmap: Roadmap,
    module_index: int,
    topic_index: int,
    subtopic_index: int,
    completed: bool,
    now: Optional[datetime] = None,
) -> Roadmap:
    """
    Mark a subtopic (in)complete.

    Completing the last open subtopic completes the topic (and the module when
    all of its topics are done) and advances the pointer. Uncompleting a
    subtopic uncompletes its topic and module.
    """
    now = now or datetime.now()
    module, topic, subtopic = find_unit(roadmap, module_index, topic_index, subtopic_index)

    subtopic.completed = completed
    subtopic.completed_at = now if completed else None

    if completed:
        if all(s.completed for s in topic.subtopics) and not topic.completed:
            topic.completed = True
            topic.completed_at = now
            _refresh_module(module, now)
            advance_position(roadmap, module_index, topic_index, now)
    else:
        topic.completed = False
        topic.completed_at = None
        module.completed = False
        module.completed_at = None
        roadmap.completed_at = None

    roadmap.progress = calculate_progress(roadmap)
    return roadmap


def next_learning_unit(
    roadmap: Roadmap,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
) -> Optional[LearningUnit]:
    """
    The unit to study after the given one.

    Subtopics are walked first, then topics, then modules; after the last
    topic of the last module it wraps around to (0, 0). The returned
    subtopic index is 0 when the next topic has subtopics, None otherwise.
    """
    if not roadmap.modules or not any(m.topics for m in roadmap.modules):
        return None
    _, topic, _ = find_unit(roadmap, module_index, topic_index)

    if subtopic_index is not None and subtopic_index + 1 < len(topic.subtopics):
        return LearningUnit(module_index=module_index, topic_index=topic_index, subtopic_index=subtopic_index + 1)

    next_module, next_topic = module_index, topic_index + 1
    # Empty modules are skipped so the pointer always lands on a real topic
    while next_topic >= len(roadmap.modules[next_module].topics):
        next_module, next_topic = next_module + 1, 0
        if next_module >= len(roadmap.modules):
            next_module = 0

    next_topic_obj = roadmap.modules[next_module].topics[next_topic]
    return LearningUnit(
        module_index=next_module,
        topic_index=next_topic,
        subtopic_index=0 if next_topic_obj.subtopics else None,
    )


def current_learning_unit(roadmap: Roadmap) -> Optional[LearningUnit]:
    """The unit the learner should study now.

    That is the pointer topic (at its first open subtopic) while it is still
    open, otherwise the unit after it.
    """
    try:
        _, topic, _ = find_unit(roadmap, roadmap.current_module, roadmap.current_topic)
    except UnitNotFoundError:
        return None

    if topic.completed:
        return next_learning_unit(roadmap, roadmap.current_module, roadmap.current_topic)

    open_subtopics = [i for i, s in enumerate(topic.subtopics) if not s.completed]
    return LearningUnit(
        module_index=roadmap.current_module,
        topic_index=roadmap.current_topic,
        subtopic_index=open_subtopics[0] if open_subtopics else None,
    )


def link_unit(
    roadmap: Roadmap,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
    content_id: Optional[str] = None,
    quiz_id: Optional[str] = None,
) -> Roadmap:
    """Record generated content/quiz ids on the unit they belong to."""
    _, topic, subtopic = find_unit(roadmap, module_index, topic_index, subtopic_index)
    unit = subtopic if subtopic is not None else topic
    if content_id:
        unit.content_id = content_id
    if quiz_id:
        unit.quiz_id = quiz_id
    return roadmap


def unlink_content(roadmap: Roadmap, content_id: str) -> bool:
    """Clear every reference to a deleted content document. True if any was found."""
    found = False
    for module in roadmap.modules:
        for topic in module.topics:
            for unit in [topic, *topic.subtopics]:
                if unit.content_id == content_id:
                    unit.content_id = None
                    found = True
    return found


def update_review_schedule(topic: Topic, next_review_date: Optional[datetime]) -> Topic:
    topic.review_count += 1
    topic.next_review_date = next_review_date
    return topic
