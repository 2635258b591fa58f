"""
Scoring of submitted quiz sessions.
"""
import math
from typing import Any, Dict, List, Optional

from .models import Question, ReviewItem, ScoreResult


def is_correct(question: Question, user_answer: Optional[Any]) -> bool:
    """
    Check a single answer.

    A question without a canonical answer can never be answered correctly.
    Comparison is on the case-insensitive string forms.
    """
    if user_answer is None or question.answer is None:
        return False
    return str(user_answer).upper() == str(question.answer).upper()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def score(questions: List[Question], answers: Dict[int, Any]) -> ScoreResult:
    """
    Score a session.

    Args:
        questions: Questions of the submitted session (the active chunk only)
        answers: Mapping of question id to the user's answer

    Returns:
        ScoreResult with the correct count, total and rounded percentage
    """
    total = len(questions)
    correct_count = sum(1 for q in questions if is_correct(q, answers.get(q.id)))
    percentage = round_half_up(100 * correct_count / total) if total else 0
    return ScoreResult(correct_count=correct_count, total=total, percentage=percentage)


def review(questions: List[Question], answers: Dict[int, Any]) -> List[ReviewItem]:
    """Build the per-question answer review shown after submit."""
    items = []
    for q in questions:
        user_answer = answers.get(q.id)
        items.append(ReviewItem(
            question_id=q.id,
            question=q.question,
            user_answer=None if user_answer is None else str(user_answer),
            correct_answer=q.answer,
            is_correct=is_correct(q, user_answer),
            explanation=q.explanation,
        ))
    return items
