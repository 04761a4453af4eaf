"""Progress statistics across the vocabulary and past tests."""
from datetime import datetime

from vocab_tutor.sm2 import is_due

MASTERED_REPETITIONS = 3
MASTERED_INTERVAL_DAYS = 21


def is_mastered(item) -> bool:
    schedule = item.schedule
    return schedule.repetitions >= MASTERED_REPETITIONS and schedule.interval_days >= MASTERED_INTERVAL_DAYS


def progress_stats(items: list, history: list, now: datetime) -> dict:
    """Word and test totals for the progress summary.

    ``progress`` is the mastered share of all words, as a percentage.
    Test scores only count completed sessions.
    """
    total = len(items)
    mastered = sum(1 for item in items if is_mastered(item))
    completed = [s for s in history if s.is_completed and s.results]
    percentages = [s.results.percentage for s in completed]
    return {
        "total_words": total,
        "mastered_words": mastered,
        "words_due": sum(1 for item in items if is_due(item.schedule, now)),
        "progress": round(mastered / total * 100, 1) if total else 0.0,
        "total_tests": len(history),
        "completed_tests": len(completed),
        "average_score": round(sum(percentages) / len(percentages)) if percentages else 0,
        "best_score": max(percentages) if percentages else 0,
        "total_test_time": sum(s.results.time_spent for s in completed),
    }
