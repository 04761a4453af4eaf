from dataclasses import FrozenInstanceError

import pytest

from vocab_tutor.models import (
    DifficultyTier, MatchingQuestion, MultipleChoiceQuestion, QuestionType, ScheduleState,
    TestSession, TestSettings, TrueFalseQuestion, TypingQuestion, difficulty_score, new_item,
)


def test_schedule_defaults():
    state = ScheduleState()
    assert state.ease_factor == 2.5
    assert state.interval_days == 1
    assert state.repetitions == 0
    assert state.last_reviewed_at is None
    assert state.last_quality is None


def test_schedule_is_immutable():
    with pytest.raises(FrozenInstanceError):
        ScheduleState().repetitions = 3


def test_new_item_is_due_now(now):
    item = new_item(7, "run", "move fast", now, difficulty="hard")
    assert item.difficulty is DifficultyTier.HARD
    assert item.schedule.next_review_at == now
    assert item.correct_count == item.incorrect_count == 0


def test_difficulty_scores():
    assert difficulty_score(DifficultyTier.EASY) == 1
    assert difficulty_score("medium") == 3
    assert difficulty_score(DifficultyTier.HARD) == 5


def test_question_type_tags():
    mc = MultipleChoiceQuestion(id="a", item_id=1, prompt="p", correct_answer="x", options=["x"])
    typing = TypingQuestion(id="b", item_id=1, prompt="p", correct_answer="x")
    matching = MatchingQuestion(id="c", item_id=1, terms=["t"], meanings=["m"], correct_answer={"t": "m"})
    tf = TrueFalseQuestion(id="d", item_id=1, prompt="p", correct_answer="true")
    assert [q.type for q in (mc, typing, matching, tf)] == [
        QuestionType.MULTIPLE_CHOICE, QuestionType.TYPING, QuestionType.MATCHING, QuestionType.TRUE_FALSE,
    ]


def test_question_type_is_not_settable():
    with pytest.raises(TypeError):
        TypingQuestion(id="b", item_id=1, prompt="p", correct_answer="x", type=QuestionType.MATCHING)


def test_session_is_completed(now):
    session = TestSession(id="s", questions=[], settings=TestSettings(), started_at=now)
    assert not session.is_completed
    session.completed_at = now
    assert session.is_completed
