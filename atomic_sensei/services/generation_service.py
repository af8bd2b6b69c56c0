"""Prompt construction and response parsing for AI-generated learning material.

Every generator takes the client as its first argument so routers can inject
it as a FastAPI dependency. Generators other than ``generate_roadmap`` never
raise on AI failure; they return fallback material instead.
"""
import json
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from atomic_sensei.models.quiz import Question, QuestionOption
from atomic_sensei.models.roadmap import Roadmap
from atomic_sensei.services.progress_service import find_unit
from atomic_sensei.services.scheduler_service import fallback_schedule, normalize_schedule

WORDS_PER_MINUTE = 200
QUIZ_CONTENT_LIMIT = 8000
DEFAULT_EXPLANATION = "This answer is correct based on the learning material."
DEFAULT_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]
DEFAULT_SUGGESTED_MINUTES = 30

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


class AIResponseError(Exception):
    """The AI provider failed or returned something unusable."""


def extract_json(text: str) -> Dict[str, Any]:
    """
    Pull a JSON object out of a model response.

    Tries, in order: the whole response, the body of a fenced code block,
    the outermost ``{...}`` span.

    Raises:
        AIResponseError: If no candidate parses to a JSON object
    """
    if not text or not text.strip():
        raise AIResponseError("Empty AI response")

    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    span = _OBJECT_SPAN.search(text)
    if span:
        candidates.append(span.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    raise AIResponseError("No JSON structure found in AI response")


async def _ask(client, prompt: str, **kwargs) -> str:
    if client is None:
        raise AIResponseError("AI client is not configured")
    try:
        return await client.complete(prompt, **kwargs)
    except AIResponseError:
        raise
    except Exception as e:
        raise AIResponseError(f"AI request failed: {e}") from e


def user_profile(user) -> Dict[str, Any]:
    """The parts of a User that personalise prompts."""
    if user is None:
        return {"name": "Student", "education_level": "other"}
    return {
        "name": user.name or "Student",
        "age": user.age,
        "education_level": user.education_level,
        "learning_preferences": user.learning_preferences.model_dump(),
    }


def learning_context(
    roadmap: Roadmap,
    module_index: int,
    topic_index: int,
    subtopic_index: Optional[int] = None,
    content_text: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Describe a roadmap unit for prompting.

    Raises:
        UnitNotFoundError: If the coordinate does not exist
    """
    module, topic, subtopic = find_unit(roadmap, module_index, topic_index, subtopic_index)
    data = {
        "roadmap_goal": roadmap.goal,
        "module_title": module.title,
        "module_description": module.description,
        "topic_title": topic.title,
        "topic_description": topic.description,
        "estimated_time_minutes": topic.estimated_time_minutes or 10,
        "module_index": module_index,
        "topic_index": topic_index,
    }
    if subtopic is not None:
        data.update({
            "subtopic_index": subtopic_index,
            "subtopic_title": subtopic.title,
            "subtopic_description": subtopic.description,
        })
    if content_text:
        data["content_text"] = content_text
    return data


def _is_subtopic(learning_data: Dict[str, Any]) -> bool:
    return learning_data.get("subtopic_index") is not None and bool(learning_data.get("subtopic_title"))


def _unit_title(learning_data: Dict[str, Any]) -> str:
    if _is_subtopic(learning_data):
        return learning_data["subtopic_title"]
    return learning_data.get("topic_title") or "this lesson"


# ============================================
# Roadmaps
# ============================================

def build_roadmap_prompt(user_data: Dict[str, Any]) -> str:
    preferences = user_data.get("learning_preferences")
    return f"""You are an expert educational curriculum designer. Create a detailed learning roadmap for a student with the following profile:

Name: {user_data.get('name') or 'Student'}
Age: {user_data.get('age') or 'Unknown'}
Education Level: {user_data.get('education_level') or 'Unknown'}
Learning Goal: {user_data['goal']}
Learning Preferences: {json.dumps(preferences) if preferences else 'No specific preferences'}

The roadmap should be structured with modules and topics, where each module is a major section and
topics are specific lessons within each module. Break the topics down into very small atomic units
that can be learned in 5-10 minutes.

Further break down each topic into 2-4 subtopics that represent even smaller, focused learning units.
Each subtopic should be an atomic concept that can be learned in just a few minutes.

Return the result as a JSON object with this structure:
{{
  "title": "Roadmap title",
  "description": "Brief description of the roadmap",
  "modules": [
    {{
      "title": "Module title",
      "description": "Module description",
      "order": 1,
      "topics": [
        {{
          "title": "Topic title",
          "description": "Brief topic description",
          "order": 1,
          "estimatedTimeMinutes": 10,
          "subtopics": [
            {{"title": "Subtopic title", "description": "Brief subtopic description"}}
          ]
        }}
      ]
    }}
  ]
}}

The structure should be detailed with at least 3-5 modules and each module should have 5-10 small atomic topics.
Your response must be a valid JSON object with exactly this structure. Do not include markdown formatting or explanation text."""


def _normalise_roadmap(data: Dict[str, Any]) -> Dict[str, Any]:
    modules = []
    for m_pos, module in enumerate(data["modules"], start=1):
        if not isinstance(module, dict):
            continue
        topics = []
        for t_pos, topic in enumerate(module.get("topics") or [], start=1):
            if not isinstance(topic, dict):
                continue
            subtopics = topic.get("subtopics")
            topics.append({
                "title": str(topic.get("title") or f"Topic {t_pos}"),
                "description": str(topic.get("description") or ""),
                "order": topic.get("order") or t_pos,
                "estimated_time_minutes": (
                    topic.get("estimatedTimeMinutes") or topic.get("estimated_time_minutes") or 10
                ),
                "subtopics": [
                    {"title": str(s.get("title") or ""), "description": str(s.get("description") or "")}
                    for s in subtopics if isinstance(s, dict)
                ] if isinstance(subtopics, list) else [],
            })
        modules.append({
            "title": str(module.get("title") or f"Module {m_pos}"),
            "description": str(module.get("description") or ""),
            "order": module.get("order") or m_pos,
            "topics": topics,
        })
    return {"title": str(data["title"]), "description": str(data["description"]), "modules": modules}


async def generate_roadmap(client, user_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Generate a curriculum tree for a learning goal.

    Args:
        client: LLM client (``complete`` coroutine)
        user_data: name, age, education_level, goal, learning_preferences

    Returns:
        Dict with title, description and normalised modules

    Raises:
        AIResponseError: If the AI call fails or the structure is invalid
    """
    print(f"[Generation] Generating roadmap for goal: {user_data.get('goal')}")
    text = await _ask(client, build_roadmap_prompt(user_data), temperature=0.4, max_tokens=8192, json_mode=True)
    data = extract_json(text)

    if not data.get("title") or not data.get("description") or not isinstance(data.get("modules"), list):
        raise AIResponseError("Invalid roadmap data structure returned by AI")

    return _normalise_roadmap(data)


# ============================================
# Lesson content
# ============================================

def build_content_prompt(learning_data: Dict[str, Any], user_data: Dict[str, Any]) -> str:
    is_subtopic = _is_subtopic(learning_data)
    unit_title = _unit_title(learning_data)
    skill_level = user_data.get("skill_level") or "intermediate"
    part_of = learning_data.get("topic_title", "")
    if not is_subtopic:
        part_of = f"{part_of} in {learning_data.get('module_title', '')}"

    return f"""You are an expert educational content creator. Generate comprehensive, engaging learning content on the following topic:

{'Subtopic' if is_subtopic else 'Topic'}: {unit_title}

This content is part of: {part_of}
Module Goal: {learning_data.get('module_description') or 'Build skills in this area'}
Overall Learning Goal: {learning_data.get('roadmap_goal') or 'Learn new skills'}
Learner: {user_data.get('education_level') or 'other'} education level, about {learning_data.get('estimated_time_minutes', 10)} minutes available

The content should be:
1. Tailored for a {skill_level} skill level
2. Concise but comprehensive with a word count of 800-1200 words
3. Include concrete examples and practical applications
4. Incorporate analogies to aid understanding where appropriate
5. Use a clear structure with headings and subheadings
6. Include code examples if the topic is technical or programming-related

The content should flow in this structure:
- Introduction (brief overview and why this topic matters)
- Main concepts (core ideas broken down clearly)
- Examples and applications
- Common misconceptions or pitfalls
- Summary of key takeaways

Format the content using Markdown. Return ONLY the educational content without any prefacing or additional commentary."""


def reading_stats(text: str) -> Dict[str, int]:
    word_count = len(text.split())
    return {
        "word_count": word_count,
        "reading_time_minutes": math.ceil(word_count / WORDS_PER_MINUTE),
    }


async def generate_content(client, learning_data: Dict[str, Any], user_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Generate a Markdown lesson for a topic or subtopic.

    Raises:
        AIResponseError: If the AI call fails or returns nothing
    """
    unit_title = _unit_title(learning_data)
    text = await _ask(client, build_content_prompt(learning_data, user_data), temperature=0.7, max_tokens=4096)
    if not text.strip():
        raise AIResponseError(f"Empty lesson returned for {unit_title}")

    return {
        "title": unit_title,
        "description": learning_data.get("subtopic_description") if _is_subtopic(learning_data)
        else learning_data.get("topic_description", ""),
        "text_content": text,
        "generated_at": datetime.now(),
        **reading_stats(text),
    }


def placeholder_content(learning_data: Dict[str, Any]) -> Dict[str, Any]:
    """Lesson shown when the AI provider is unavailable."""
    title = _unit_title(learning_data)
    description = (
        learning_data.get("subtopic_description") if _is_subtopic(learning_data)
        else learning_data.get("topic_description")
    ) or ""
    text = (
        f"# {title}\n\n{description}\n\n"
        "Lesson generation is unavailable right now. Configure an AI API key to generate the full lesson."
    )
    return {
        "title": title,
        "description": description,
        "text_content": text,
        "generated_at": datetime.now(),
        **reading_stats(text),
    }


# ============================================
# Quizzes
# ============================================

def build_quiz_prompt(learning_data: Dict[str, Any]) -> str:
    is_subtopic = _is_subtopic(learning_data)
    content_text = learning_data.get("content_text")
    quiz_on = (
        content_text[:QUIZ_CONTENT_LIMIT] if content_text
        else "Focus on the topic title and description as content is not available"
    )
    parent = f"Parent Topic: {learning_data.get('topic_title')}\n" if is_subtopic else ""

    return f"""You are an expert educational assessment creator designing a quiz for a learning platform.
Create a quiz based on the following content:

--- LEARNING CONTEXT ---
Topic: {_unit_title(learning_data)}
{parent}Module: {learning_data.get('module_title', '')}
Module Description: {learning_data.get('module_description', '')}

--- CONTENT TO QUIZ ON ---
{quiz_on}

--- QUIZ REQUIREMENTS ---
1. Create exactly 5 quiz questions that test understanding of key concepts from this specific content
2. Questions must be accurate and based solely on the provided content
3. Include a mix of multiple-choice (4 options) and true/false questions
4. Each question must have an explanation for the correct answer
5. Ensure questions range from basic recall to application of concepts

--- RESPONSE FORMAT ---
Return a valid JSON object with the following structure:
{{
  "title": "Quiz: [appropriate title based on content]",
  "description": "Brief description of what the quiz covers",
  "questions": [
    {{
      "type": "multipleChoice",
      "question": "Question text goes here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "answer": 0,
      "explanation": "Explanation of why this answer is correct"
    }},
    {{
      "type": "trueFalse",
      "question": "True/false statement goes here?",
      "answer": true,
      "explanation": "Explanation of why this is true or false"
    }}
  ]
}}

For multiple-choice questions give the 0-based index of the correct option in "answer".
For true-false questions use a boolean in "answer"."""


_TYPE_ALIASES = {
    "multiplechoice": "multiple-choice",
    "mcq": "multiple-choice",
    "truefalse": "true-false",
    "boolean": "true-false",
    "shortanswer": "short-answer",
    "text": "short-answer",
}


def _question_type(raw: Dict[str, Any]) -> str:
    declared = raw.get("type") or raw.get("questionType") or raw.get("question_type") or ""
    key = re.sub(r"[^a-z]", "", str(declared).lower())
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    if raw.get("options"):
        return "multiple-choice"
    if isinstance(raw.get("answer"), bool):
        return "true-false"
    return "short-answer"


def _option_id(index: int) -> str:
    return chr(ord("a") + index)


def _correct_index(answer: Any, option_texts: List[str]) -> int:
    if isinstance(answer, bool):
        return 0
    if isinstance(answer, int):
        return answer if 0 <= answer < len(option_texts) else 0
    if isinstance(answer, str):
        stripped = answer.strip()
        if stripped.isdigit() and int(stripped) < len(option_texts):
            return int(stripped)
        if len(stripped) == 1 and stripped.isalpha():
            index = ord(stripped.lower()) - ord("a")
            if 0 <= index < len(option_texts):
                return index
        for index, text in enumerate(option_texts):
            if text.strip().lower() == stripped.lower():
                return index
    return 0


def normalize_question(raw: Dict[str, Any]) -> Optional[Question]:
    """Map one AI question object onto the Question model (None if unusable)."""
    if not isinstance(raw, dict):
        return None
    text = raw.get("question") or raw.get("questionText") or raw.get("question_text")
    if not text:
        return None

    question_type = _question_type(raw)
    answer = raw.get("answer", raw.get("correctAnswer"))
    explanation = raw.get("explanation") or DEFAULT_EXPLANATION

    if question_type == "multiple-choice":
        raw_options = raw.get("options")
        if not isinstance(raw_options, list) or not raw_options:
            option_texts, correct = list(DEFAULT_OPTIONS), 0
        else:
            option_texts = [
                str(o.get("text", "")) if isinstance(o, dict) else str(o) for o in raw_options
            ]
            correct = _correct_index(answer, option_texts)
        return Question(
            question_text=str(text),
            question_type="multiple-choice",
            options=[
                QuestionOption(id=_option_id(i), text=t, is_correct=(i == correct))
                for i, t in enumerate(option_texts)
            ],
            explanation=explanation,
        )

    if question_type == "true-false":
        if isinstance(answer, str):
            correct_answer = "false" if answer.strip().lower() == "false" else "true"
        else:
            correct_answer = "false" if answer is False else "true"
        return Question(
            question_text=str(text),
            question_type="true-false",
            correct_answer=correct_answer,
            explanation=explanation,
        )

    return Question(
        question_text=str(text),
        question_type="short-answer",
        correct_answer=str(answer) if answer is not None else "",
        explanation=explanation,
    )


def fallback_quiz(learning_data: Dict[str, Any]) -> Dict[str, Any]:
    """Two-question quiz used when generation fails."""
    unit_title = _unit_title(learning_data)
    print(f"[Generation] Creating fallback quiz for {unit_title}")
    questions = [
        normalize_question({
            "type": "multipleChoice",
            "question": f"Which of the following best describes {unit_title}?",
            "options": [
                "A core concept in this module",
                "An advanced topic requiring prerequisite knowledge",
                "A supplementary concept providing context",
                "A practical application of earlier concepts",
            ],
            "answer": 0,
            "explanation": "This is the main focus of the current learning unit.",
        }),
        normalize_question({
            "type": "trueFalse",
            "question": f"{unit_title} is an important concept to understand for mastery of this subject.",
            "answer": True,
            "explanation": "Understanding this concept is essential for building a solid foundation in this subject area.",
        }),
    ]
    return {
        "title": f"Quiz: {unit_title}",
        "description": f"Test your knowledge about {unit_title}",
        "questions": questions,
        "ai_generated": False,
    }


async def generate_quiz(client, learning_data: Dict[str, Any], user_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Generate quiz questions for a lesson.

    Returns:
        Dict with title, description, questions (list of Question) and
        ai_generated; the fallback quiz on any failure
    """
    unit_title = _unit_title(learning_data)
    print(f"[Generation] Generating quiz for {'subtopic' if _is_subtopic(learning_data) else 'topic'}: {unit_title}")
    try:
        text = await _ask(client, build_quiz_prompt(learning_data), temperature=0.2, max_tokens=8192, json_mode=True)
        data = extract_json(text)
        raw_questions = data.get("questions")
        if not isinstance(raw_questions, list) or not raw_questions:
            raise AIResponseError("Invalid quiz data structure returned by AI")

        questions = [q for q in (normalize_question(raw) for raw in raw_questions) if q is not None]
        if not questions:
            raise AIResponseError("AI quiz contained no usable questions")
    except AIResponseError as e:
        print(f"[Generation] Quiz generation failed for {unit_title}: {e}")
        return fallback_quiz(learning_data)

    prefix = f"{learning_data.get('topic_title')}: " if _is_subtopic(learning_data) else ""
    print(f"[Generation] Quiz parsed with {len(questions)} questions")
    return {
        "title": data.get("title") or f"Quiz: {prefix}{unit_title}",
        "description": data.get("description") or f"Test your knowledge of {unit_title}",
        "questions": questions,
        "ai_generated": True,
    }


# ============================================
# Answer evaluation
# ============================================

def heuristic_evaluation(correct_answer: str, user_answer: Any) -> Dict[str, Any]:
    expected = (correct_answer or "").strip().lower()
    given = str(user_answer or "").strip().lower()
    is_correct = bool(expected) and expected in given
    return {
        "is_correct": is_correct,
        "score": 100 if is_correct else 0,
        "feedback": "Answer matches the expected answer." if is_correct
        else f"The expected answer was: {correct_answer}",
    }


async def evaluate_answer(client, question_text: str, correct_answer: str, user_answer: Any) -> Dict[str, Any]:
    """Grade a short answer with partial credit. Falls back to text matching."""
    prompt = f"""You are an educational assessment evaluator. Evaluate if the student's answer is correct:

Question: {question_text}
Correct Answer: {correct_answer}
Student's Answer: {user_answer}

Judge whether the student's answer captures the key points of the correct answer.
Consider partial credit if appropriate.

Return the result as a JSON object with this structure:
{{
  "isCorrect": true,
  "score": 0,
  "feedback": "Constructive feedback for the student"
}}
where score is a 0-100 percentage."""
    try:
        data = extract_json(await _ask(client, prompt, temperature=0.0, max_tokens=400, json_mode=True))
        score = float(data.get("score", 0))
    except (AIResponseError, TypeError, ValueError) as e:
        print(f"[Generation] Answer evaluation failed, using text match: {e}")
        return heuristic_evaluation(correct_answer, user_answer)

    is_correct = data.get("isCorrect", data.get("is_correct", False))
    if isinstance(is_correct, str):
        is_correct = is_correct.strip().lower() == "true"

    return {
        "is_correct": bool(is_correct),
        "score": max(0.0, min(100.0, score)),
        "feedback": str(data.get("feedback") or ""),
    }


# ============================================
# Scheduling
# ============================================

async def calculate_next_delivery(
    client,
    user_data: Dict[str, Any],
    learning_data: Dict[str, Any],
    quiz_result: Dict[str, Any],
    review_count: int = 0,
) -> Dict[str, Any]:
    """
    Decide when to deliver the next lesson and whether it should be a review.

    Returns:
        ``{"interval_minutes": int, "is_review": bool, "reason": str}``
    """
    fallback = fallback_schedule(
        quiz_result.get("percentage_score", 0),
        quiz_result.get("passed", False),
        review_count,
    )
    prompt = f"""You are an expert in spaced repetition learning. Calculate the next optimal time to deliver content to a student:

User Profile: {json.dumps(user_data, default=str)}
Learning Unit: {json.dumps(learning_data, default=str)}
Quiz Result: {json.dumps(quiz_result, default=str)}

Based on the student's performance in the quiz and spaced repetition principles, determine:
1. How many minutes from now the student should receive the next content
2. Whether the next content should be a review of this topic or move on to the next topic

Consider these factors:
- If the score was high (>80%), a longer interval may be appropriate
- If the score was low (<50%), a shorter interval with review is recommended
- The complexity of the topic
- Previous reviews of this topic: {review_count}

Return the result as a JSON object with this structure:
{{
  "intervalMinutes": 60,
  "isReview": false,
  "reason": "Brief explanation of the decision"
}}"""
    try:
        data = extract_json(await _ask(client, prompt, temperature=0.2, max_tokens=300, json_mode=True))
    except AIResponseError as e:
        print(f"[Generation] Schedule calculation failed, using heuristic: {e}")
        return fallback
    return normalize_schedule(data, fallback)


async def suggest_timer(client, user_data: Dict[str, Any], learning_data: Dict[str, Any]) -> Dict[str, Any]:
    """Suggest how many minutes to wait before the next study session."""
    fallback = {"minutes": DEFAULT_SUGGESTED_MINUTES, "reason": "Default study break"}
    prompt = f"""You are a study coach. Suggest how many minutes a learner should wait before their next short lesson.

Learner: {json.dumps(user_data, default=str)}
Next lesson: {json.dumps(learning_data, default=str)}

Return a JSON object: {{"minutes": 30, "reason": "Brief explanation"}} with minutes between 5 and 240."""
    try:
        data = extract_json(await _ask(client, prompt, temperature=0.3, max_tokens=200, json_mode=True))
        minutes = int(data.get("minutes"))
    except (AIResponseError, TypeError, ValueError, OverflowError) as e:
        print(f"[Generation] Timer suggestion failed: {e}")
        return fallback
    return {"minutes": max(5, min(240, minutes)), "reason": str(data.get("reason") or "")}
