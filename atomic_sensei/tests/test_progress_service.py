from datetime import datetime

import pytest

from atomic_sensei.models.roadmap import Module, Roadmap, Subtopic, Topic
from atomic_sensei.services.progress_service import (
    UnitNotFoundError,
    calculate_progress,
    current_learning_unit,
    find_unit,
    link_unit,
    next_learning_unit,
    round_percent,
    set_subtopic_completion,
    set_topic_completion,
    unlink_content,
)


def make_roadmap(*topic_counts, subtopics=0):
    modules = [
        Module(
            title=f"M{m}",
            description="",
            topics=[
                Topic(
                    title=f"T{m}.{t}",
                    description="",
                    subtopics=[Subtopic(title=f"S{s}", description="") for s in range(subtopics)],
                )
                for t in range(count)
            ],
        )
        for m, count in enumerate(topic_counts)
    ]
    return Roadmap(user_id="u1", title="R", description="", goal="g", modules=modules)


def test_round_percent_halves_up():
    assert round_percent(50.5) == 51
    assert round_percent(2.5) == 3
    assert round_percent(66.666) == 67
    assert round_percent(33.333) == 33


def test_progress_with_no_topics():
    assert calculate_progress(make_roadmap()) == 0
    assert calculate_progress(make_roadmap(0, 0)) == 0


def test_find_unit_names_missing_level():
    roadmap = make_roadmap(2, subtopics=1)
    with pytest.raises(UnitNotFoundError, match="Module not found"):
        find_unit(roadmap, 3, 0)
    with pytest.raises(UnitNotFoundError, match="Topic not found"):
        find_unit(roadmap, 0, -1)
    with pytest.raises(UnitNotFoundError, match="Subtopic not found"):
        find_unit(roadmap, 0, 1, 1)


def test_topic_completion_cascades_to_module():
    now = datetime(2024, 1, 1, 12, 0)
    roadmap = make_roadmap(2, 1)

    set_topic_completion(roadmap, 0, 0, True, now)
    assert roadmap.progress == 33
    assert not roadmap.modules[0].completed
    assert (roadmap.current_module, roadmap.current_topic) == (0, 1)

    set_topic_completion(roadmap, 0, 1, True, now)
    assert roadmap.modules[0].completed
    assert roadmap.modules[0].completed_at == now
    assert (roadmap.current_module, roadmap.current_topic) == (1, 0)

    set_topic_completion(roadmap, 1, 0, True, now)
    assert roadmap.progress == 100
    assert roadmap.completed_at == now

    set_topic_completion(roadmap, 0, 0, False, now)
    assert not roadmap.modules[0].completed
    assert roadmap.modules[0].completed_at is None
    assert roadmap.completed_at is None
    assert roadmap.progress == 67


def test_subtopic_completion_completes_topic_once():
    roadmap = make_roadmap(2, subtopics=2)

    set_subtopic_completion(roadmap, 0, 0, 0, True)
    assert not roadmap.modules[0].topics[0].completed

    set_subtopic_completion(roadmap, 0, 0, 1, True)
    assert roadmap.modules[0].topics[0].completed
    assert roadmap.current_topic == 1

    # Completing an already completed topic's subtopic again leaves the pointer alone
    roadmap.current_topic = 0
    set_subtopic_completion(roadmap, 0, 0, 1, True)
    assert roadmap.current_topic == 0


def test_subtopic_uncompletion_cascades_up():
    roadmap = make_roadmap(1, subtopics=1)
    set_subtopic_completion(roadmap, 0, 0, 0, True)
    assert roadmap.modules[0].completed
    assert roadmap.completed_at is not None

    set_subtopic_completion(roadmap, 0, 0, 0, False)
    assert not roadmap.modules[0].topics[0].completed
    assert not roadmap.modules[0].completed
    assert roadmap.completed_at is None
    assert roadmap.progress == 0


def test_next_learning_unit_walks_subtopics_topics_modules():
    roadmap = make_roadmap(2, 1, subtopics=2)

    unit = next_learning_unit(roadmap, 0, 0, 0)
    assert (unit.module_index, unit.topic_index, unit.subtopic_index) == (0, 0, 1)

    unit = next_learning_unit(roadmap, 0, 0, 1)
    assert (unit.module_index, unit.topic_index, unit.subtopic_index) == (0, 1, 0)

    unit = next_learning_unit(roadmap, 0, 1, 1)
    assert (unit.module_index, unit.topic_index) == (1, 0)


def test_next_learning_unit_wraps_and_skips_empty_modules():
    roadmap = make_roadmap(1, 0, 1)

    unit = next_learning_unit(roadmap, 0, 0)
    assert (unit.module_index, unit.topic_index, unit.subtopic_index) == (2, 0, None)

    unit = next_learning_unit(roadmap, 2, 0)
    assert (unit.module_index, unit.topic_index) == (0, 0)

    assert next_learning_unit(make_roadmap(0), 0, 0) is None


def test_current_learning_unit():
    roadmap = make_roadmap(2, subtopics=2)
    roadmap.modules[0].topics[0].subtopics[0].completed = True

    unit = current_learning_unit(roadmap)
    assert (unit.module_index, unit.topic_index, unit.subtopic_index) == (0, 0, 1)

    roadmap.modules[0].topics[0].completed = True
    unit = current_learning_unit(roadmap)
    assert (unit.module_index, unit.topic_index, unit.subtopic_index) == (0, 1, 0)

    assert current_learning_unit(make_roadmap()) is None


def test_link_and_unlink_content():
    roadmap = make_roadmap(1, subtopics=1)
    link_unit(roadmap, 0, 0, content_id="c1", quiz_id="q1")
    link_unit(roadmap, 0, 0, 0, content_id="c1")

    topic = roadmap.modules[0].topics[0]
    assert (topic.content_id, topic.quiz_id, topic.subtopics[0].content_id) == ("c1", "q1", "c1")

    assert unlink_content(roadmap, "c1") is True
    assert topic.content_id is None and topic.subtopics[0].content_id is None
    assert topic.quiz_id == "q1"
    assert unlink_content(roadmap, "c1") is False


def test_pointer_skips_modules_without_topics():
    roadmap = make_roadmap(1, 0, 1)

    set_topic_completion(roadmap, 0, 0, True)
    assert (roadmap.current_module, roadmap.current_topic) == (2, 0)
    assert roadmap.completed_at is None

    unit = current_learning_unit(roadmap)
    assert (unit.module_index, unit.topic_index) == (2, 0)


def test_trailing_empty_modules_finish_the_roadmap():
    roadmap = make_roadmap(1, 0)

    set_topic_completion(roadmap, 0, 0, True)
    assert (roadmap.current_module, roadmap.current_topic) == (0, 0)
    assert roadmap.completed_at is not None
