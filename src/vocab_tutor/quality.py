"""Turn an answered test question into an SM-2 quality score."""
import math

from vocab_tutor.models import QuestionType, TestSettings

DEFAULT_TIME_LIMIT = 30


def _time_ratio(question, settings: TestSettings) -> float:
    limit = settings.per_question_time_limit or DEFAULT_TIME_LIMIT
    spent = question.time_spent_seconds
    if spent is None:
        spent = DEFAULT_TIME_LIMIT
    return spent / limit


def base_quality(is_correct: bool, time_ratio: float) -> float:
    if is_correct:
        if time_ratio <= 0.3:
            return 5  # very fast
        elif time_ratio <= 0.5:
            return 4
        elif time_ratio <= 0.8:
            return 4
        return 3  # slow but right
    # Very fast wrong answers are most likely guesses.
    if time_ratio <= 0.2:
        return 1
    elif time_ratio >= 0.8:
        return 2
    return 2


def adjust_for_type(quality: float, question_type: QuestionType, is_correct: bool) -> float:
    """Recognition questions earn less than recall ones."""
    if not is_correct:
        return quality
    if question_type == QuestionType.MULTIPLE_CHOICE:
        return max(3, quality - 0.5)
    elif question_type == QuestionType.TYPING:
        return min(5, quality + 0.5)
    elif question_type == QuestionType.TRUE_FALSE:
        return max(3, quality - 0.3)
    elif question_type == QuestionType.MATCHING:
        return quality
    raise ValueError(f"Unknown question type: {question_type!r}")


def adjust_for_difficulty(quality: float, difficulty_score: int, is_correct: bool) -> float:
    if difficulty_score >= 4:
        return min(5, quality + 0.5) if is_correct else max(1, quality - 0.5)
    elif difficulty_score <= 2:
        return max(3, quality - 0.3) if is_correct else quality
    return quality


def derive_quality(question, settings: TestSettings) -> int:
    """Quality 0-5 for one answered question.

    Starts from correctness and answer speed relative to the per-question
    time limit, then nudges for question type and item difficulty. The
    result is rounded half up and clamped, so it is always safe to hand to
    ``sm2.advance``.
    """
    if question.is_correct is None:
        raise ValueError(f"Question {question.id} has not been answered")
    is_correct = bool(question.is_correct)
    quality = base_quality(is_correct, _time_ratio(question, settings))
    quality = adjust_for_type(quality, question.type, is_correct)
    quality = adjust_for_difficulty(quality, question.difficulty_score or 3, is_correct)
    return max(0, min(5, int(math.floor(quality + 0.5))))
