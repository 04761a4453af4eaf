"""Test sessions: assembly, grading, schedule write-back and history analysis."""
import logging
import random
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from vocab_tutor.errors import SessionStateError
from vocab_tutor.models import (
    DIFFICULTY_ORDER, Answer, DifficultyTier, MatchingQuestion, MultipleChoiceQuestion,
    QuestionType, TestFilters, TestRecommendation, TestResults, TestSession,
    TestSettings, TrueFalseQuestion, TypingQuestion,
)
from vocab_tutor.quality import derive_quality
from vocab_tutor.questions import generate_mixed, generate_questions
from vocab_tutor.similarity import validate_typing_answer
from vocab_tutor.sm2 import review_item

logger = logging.getLogger(__name__)

URGENT_SUCCESS_RATE = 0.6
RECENT_FAILURE_SUCCESS_RATE = 0.8
RECENT_FAILURE_WINDOW = timedelta(days=7)
WEAK_TYPE_THRESHOLD = 0.7
TYPE_HISTORY_SESSIONS = 5
SCORE_HISTORY_SESSIONS = 3


def filter_items(items: list, categories=None, difficulties=None) -> list:
    """Items matching the category and difficulty filters; empty means any."""
    categories = set(categories or [])
    difficulties = {DifficultyTier(d) for d in (difficulties or [])}
    return [
        item for item in items
        if (not categories or item.category in categories)
        and (not difficulties or item.difficulty in difficulties)
    ]


def sort_by_difficulty(items: list, hardest_first: bool = False) -> list:
    return sorted(items, key=lambda item: DIFFICULTY_ORDER[item.difficulty], reverse=hardest_first)


def build_session(
    pool: list,
    filters: TestFilters,
    settings: TestSettings,
    rng: random.Random,
    now: datetime,
) -> TestSession:
    items = filter_items(pool, filters.categories, filters.difficulties)
    if filters.hardest_first:
        # Random within a tier, hardest tier first.
        items = sort_by_difficulty(rng.sample(items, len(items)), hardest_first=True)
    keep_order = filters.hardest_first
    if filters.question_type is None:
        questions = generate_mixed(items, settings.question_count, rng, keep_order=keep_order)
    else:
        questions = generate_questions(
            filters.question_type, items, settings.question_count, rng, keep_order=keep_order,
        )
    logger.info("Built session with %d questions from %d items", len(questions), len(items))
    return TestSession(
        id=uuid.UUID(int=rng.getrandbits(128)).hex,
        questions=questions,
        settings=settings,
        started_at=now,
        question_type=filters.question_type,
    )


def _parse_bool(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "t", "yes", "y"):
            return True
        if lowered in ("false", "f", "no", "n"):
            return False
    return None


def grade_answer(question, submitted) -> bool:
    """Whether ``submitted`` answers ``question``. Malformed input is just wrong."""
    if submitted is None:
        return False
    if isinstance(question, MultipleChoiceQuestion):
        return isinstance(submitted, str) and submitted.strip() == question.correct_answer.strip()
    elif isinstance(question, TypingQuestion):
        return isinstance(submitted, str) and validate_typing_answer(submitted, question.correct_answer)
    elif isinstance(question, TrueFalseQuestion):
        parsed = _parse_bool(submitted)
        return parsed is not None and parsed == (question.correct_answer == "true")
    elif isinstance(question, MatchingQuestion):
        if not isinstance(submitted, dict):
            return False
        return all(submitted.get(term) == meaning for term, meaning in question.correct_answer.items())
    raise TypeError(f"Unknown question: {question!r}")


def record_answers(session: TestSession, answers) -> None:
    """Apply (question_id, submitted, time_spent) tuples to the session's questions."""
    by_id = {q.id: q for q in session.questions}
    for answer in answers:
        answer = Answer(*answer)
        question = by_id.get(answer.question_id)
        if question is None:
            logger.warning("Answer for unknown question %s ignored", answer.question_id)
            continue
        question.is_correct = grade_answer(question, answer.submitted)
        if not question.is_correct and answer.submitted is None:
            logger.debug("Question %s timed out", question.id)
        question.user_answer = answer.submitted
        question.time_spent_seconds = answer.time_spent_seconds


def calculate_results(session: TestSession) -> TestResults:
    total = len(session.questions)
    correct = sum(1 for q in session.questions if q.is_correct)
    time_spent = sum(q.time_spent_seconds or 0 for q in session.questions)
    return TestResults(
        score=correct,
        percentage=round(correct / total * 100, 1) if total else 0.0,
        total_questions=total,
        correct_answers=correct,
        time_spent=time_spent,
        average_time_per_question=round(time_spent / total, 1) if total else 0.0,
    )


def complete_session(session: TestSession, answers, items, now: datetime) -> dict:
    """Grade, score and close ``session``; return rescheduled items by id.

    ``items`` is the learner's vocabulary (a list or an id-keyed dict). It is
    not modified: each answered question's owning item is replaced by a new
    item carrying the advanced schedule, and the caller writes the returned
    mapping back to storage. Unanswered questions count against the score
    but leave the schedule alone.
    """
    if session.is_completed:
        raise SessionStateError(f"Session {session.id} is already completed")
    record_answers(session, answers)

    current = dict(items) if isinstance(items, dict) else {item.id: item for item in items}
    updated = {}
    for question in session.questions:
        if question.is_correct is None:
            continue
        item = updated.get(question.item_id) or current.get(question.item_id)
        if item is None:
            logger.warning("Question %s refers to missing item %s", question.id, question.item_id)
            continue
        quality = derive_quality(question, session.settings)
        updated[item.id] = review_item(item, quality, now, correct=question.is_correct)

    session.results = calculate_results(session)
    session.completed_at = now
    logger.info(
        "Session %s completed: %d/%d (%.1f%%)",
        session.id, session.results.correct_answers, session.results.total_questions,
        session.results.percentage,
    )
    return updated


def _newest_first(history: list) -> list:
    completed = [s for s in history if s.is_completed]
    return sorted(completed, key=lambda s: s.completed_at, reverse=True)


def item_performance(history: list) -> dict:
    """Per item id: correct answers, total answers and the latest failure time."""
    performance = defaultdict(lambda: {"correct": 0, "total": 0, "last_failed": None})
    for session in history:
        if not session.is_completed:
            continue
        for question in session.questions:
            if question.is_correct is None:
                continue
            stats = performance[question.item_id]
            stats["total"] += 1
            if question.is_correct:
                stats["correct"] += 1
            elif stats["last_failed"] is None or session.completed_at > stats["last_failed"]:
                stats["last_failed"] = session.completed_at
    return dict(performance)


def find_urgent_review_items(history: list, items: list, now: datetime) -> list:
    """Items that did badly in past tests, worst success rate first."""
    performance = item_performance(history)
    urgent = []
    for item in items:
        stats = performance.get(item.id)
        if not stats:
            continue
        rate = stats["correct"] / stats["total"]
        failed_recently = (
            stats["last_failed"] is not None and now - stats["last_failed"] < RECENT_FAILURE_WINDOW
        )
        if rate < URGENT_SUCCESS_RATE or (rate < RECENT_FAILURE_SUCCESS_RATE and failed_recently):
            urgent.append((rate, item))
    urgent.sort(key=lambda pair: pair[0])
    return [item for _, item in urgent]


def type_success_rates(history: list) -> dict:
    performance = defaultdict(lambda: [0, 0])
    for session in history:
        for question in session.questions:
            if question.is_correct is None:
                continue
            performance[question.type][1] += 1
            if question.is_correct:
                performance[question.type][0] += 1
    return {kind: correct / total for kind, (correct, total) in performance.items()}


def suggest_difficulties(history: list) -> list:
    recent = _newest_first(history)[:SCORE_HISTORY_SESSIONS]
    if not recent:
        return [DifficultyTier.EASY, DifficultyTier.MEDIUM]
    average = sum(s.results.percentage if s.results else 0 for s in recent) / len(recent)
    if average >= 85:
        return [DifficultyTier.MEDIUM, DifficultyTier.HARD]
    elif average >= 70:
        return [DifficultyTier.EASY, DifficultyTier.MEDIUM, DifficultyTier.HARD]
    return [DifficultyTier.EASY, DifficultyTier.MEDIUM]


def suggest_next_test_parameters(history: list) -> TestRecommendation:
    """Recommend the next test from past sessions."""
    difficulties = suggest_difficulties(history)
    recent = _newest_first(history)
    if not recent:
        return TestRecommendation(
            question_type=None,
            reason="Mixed test to find strengths and weaknesses",
            settings=TestSettings(question_count=10, time_limit=300, show_correct_answer=True, instant_feedback=True),
            difficulties=difficulties,
        )

    rates = type_success_rates([s for s in recent[:TYPE_HISTORY_SESSIONS] if s.results])
    if rates:
        weakest = min(rates, key=rates.get)
        if rates[weakest] < WEAK_TYPE_THRESHOLD:
            label = QuestionType(weakest).value.replace("_", " ")
            return TestRecommendation(
                question_type=QuestionType(weakest),
                reason=f"Improve {label} questions ({rates[weakest] * 100:.0f}% correct recently)",
                settings=TestSettings(question_count=15, time_limit=450, show_correct_answer=True, instant_feedback=True),
                difficulties=difficulties,
            )

    return TestRecommendation(
        question_type=None,
        reason="Balanced performance, keep up the mixed challenge",
        settings=TestSettings(question_count=20, time_limit=600, show_correct_answer=False, instant_feedback=False),
        difficulties=difficulties,
    )
