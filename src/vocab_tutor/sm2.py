"""SM-2 spaced repetition algorithm."""
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from vocab_tutor.errors import InvalidQualityError
from vocab_tutor.models import ScheduleState, VocabularyItem

MIN_EASE_FACTOR = 1.3
MAX_INTERVAL_DAYS = 180


def check_quality(quality) -> int:
    """Reject anything that is not an integer in 0-5."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(f"quality must be an int, got {quality!r}")
    if not 0 <= quality <= 5:
        raise InvalidQualityError(f"quality must be within 0-5, got {quality}")
    return quality


def sm2_update(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval: int,
) -> dict:
    """Calculate next review parameters using SM-2.

    A failed review resets the streak and interval but keeps the ease
    factor. Intervals grow by ``ceil(interval * ease_factor)`` and are
    capped at MAX_INTERVAL_DAYS.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect)
        repetitions: Number of consecutive correct reviews
        ease_factor: Current ease factor (minimum 1.3)
        interval: Current interval in days

    Returns:
        Dict with updated interval, repetitions, ease_factor.
    """
    check_quality(quality)

    if quality >= 3:
        # Correct response
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            # Drop float noise (2 decimal ease) before rounding up.
            new_interval = math.ceil(round(interval * ease_factor, 6))
        new_repetitions = repetitions + 1

        new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
        new_ef = max(MIN_EASE_FACTOR, new_ef)
    else:
        # Incorrect: reset, ease unchanged
        new_repetitions = 0
        new_interval = 1
        new_ef = ease_factor

    return {
        "interval": min(MAX_INTERVAL_DAYS, max(1, new_interval)),
        "repetitions": new_repetitions,
        "ease_factor": round(new_ef, 2),
    }


def advance(state: ScheduleState, quality: int, now: datetime) -> ScheduleState:
    """Return the schedule that follows ``state`` after a review rated ``quality``.

    Pure: the only clock is ``now``. Raises InvalidQualityError for quality
    outside 0-5.
    """
    updated = sm2_update(
        quality=quality,
        repetitions=state.repetitions,
        ease_factor=state.ease_factor,
        interval=state.interval_days,
    )
    new_state = ScheduleState(
        ease_factor=updated["ease_factor"],
        interval_days=updated["interval"],
        repetitions=updated["repetitions"],
        last_reviewed_at=now,
        next_review_at=now + timedelta(days=updated["interval"]),
        last_quality=quality,
    )
    assert new_state.ease_factor >= MIN_EASE_FACTOR
    assert 1 <= new_state.interval_days <= MAX_INTERVAL_DAYS
    return new_state


def review_item(item: VocabularyItem, quality: int, now: datetime, correct: Optional[bool] = None) -> VocabularyItem:
    """Apply one review to an item, returning a new item.

    ``correct`` drives the statistics counters; when omitted it follows
    ``quality >= 3``.
    """
    if correct is None:
        correct = quality >= 3
    return replace(
        item,
        schedule=advance(item.schedule, quality, now),
        correct_count=item.correct_count + (1 if correct else 0),
        incorrect_count=item.incorrect_count + (0 if correct else 1),
    )


def is_due(state: ScheduleState, now: datetime) -> bool:
    return state.next_review_at is None or state.next_review_at <= now


def due_items(items: list, now: datetime, limit: Optional[int] = None) -> list:
    """Items due for review, never-scheduled first, then oldest due date."""
    due = [item for item in items if is_due(item.schedule, now)]
    due.sort(key=lambda item: (item.schedule.next_review_at is not None, item.schedule.next_review_at or now))
    return due[:limit] if limit is not None else due
