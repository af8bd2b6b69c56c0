"""Quiz grading."""
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from atomic_sensei.models.quiz import Question, QuestionResult, Quiz, QuizResult
from atomic_sensei.services.progress_service import round_percent

REVIEW_THRESHOLD = 80

Evaluator = Callable[[str, str, Any], Awaitable[Dict[str, Any]]]


def grade_multiple_choice(question: Question, answer: Any) -> bool:
    """
    Accepts an option id ("b"), an option index (1), or a list of option ids
    for questions with several correct options (all of them, nothing else).
    """
    correct_ids = [o.id for o in question.options if o.is_correct]
    if not correct_ids or answer is None or isinstance(answer, bool):
        return False

    if isinstance(answer, list):
        chosen = {str(a) for a in answer}
        return len(answer) == len(correct_ids) and chosen == set(correct_ids)

    if isinstance(answer, int):
        return 0 <= answer < len(question.options) and question.options[answer].is_correct

    return str(answer).strip() == correct_ids[0]


def grade_true_false(question: Question, answer: Any) -> bool:
    if answer is None or question.correct_answer is None:
        return False
    if isinstance(answer, bool):
        answer = "true" if answer else "false"
    return question.correct_answer.strip().lower() == str(answer).strip().lower()


def concept_from_question(question: Question) -> str:
    """Short label for a concept to review: the first three words of the question."""
    return " ".join(question.question_text.split(" ")[:3]) + "..."


async def grade_question(question: Question, answer: Any, evaluate: Evaluator) -> Tuple[QuestionResult, float]:
    """Grade one answer. Returns the result and the points it is out of."""
    feedback = None
    if question.question_type == "multiple-choice":
        is_correct = grade_multiple_choice(question, answer)
        points = question.points_value if is_correct else 0
    elif question.question_type == "true-false":
        is_correct = grade_true_false(question, answer)
        points = question.points_value if is_correct else 0
    else:
        evaluation = await evaluate(question.question_text, question.correct_answer or "", answer)
        is_correct = bool(evaluation.get("is_correct"))
        points = float(evaluation.get("score", 0)) / 100 * question.points_value
        feedback = evaluation.get("feedback")

    result = QuestionResult(
        question_id=question.id,
        user_answer=answer,
        is_correct=is_correct,
        points_earned=points,
        feedback=feedback,
    )
    return result, question.points_value


async def grade_submission(
    quiz: Quiz,
    answers: List[Any],
    completion_time: int,
    evaluate: Evaluator,
) -> QuizResult:
    """
    Grade a full submission. ``answers`` is index-aligned with the questions;
    missing answers count as wrong.
    """
    question_results = []
    total_points = 0.0
    earned_points = 0.0
    concepts_to_review: List[str] = []

    for index, question in enumerate(quiz.questions):
        answer = answers[index] if index < len(answers) else None
        result, possible = await grade_question(question, answer, evaluate)
        question_results.append(result)
        total_points += possible
        earned_points += result.points_earned

        if not result.is_correct:
            concept = concept_from_question(question)
            if concept not in concepts_to_review:
                concepts_to_review.append(concept)

    percentage = round_percent(earned_points / total_points * 100) if total_points else 0
    passed = percentage >= quiz.passing_score

    return QuizResult(
        user_id=quiz.user_id,
        quiz_id=quiz.id,
        roadmap_id=quiz.roadmap_id,
        content_id=quiz.content_id,
        question_results=question_results,
        total_score=earned_points,
        percentage_score=percentage,
        passed=passed,
        completion_time=completion_time,
        review_needed=not passed or percentage < REVIEW_THRESHOLD,
        concepts_to_review=concepts_to_review,
    )
