# tests/test_orchestrator.py
import itertools
import random
from datetime import timedelta

import pytest

from vocab_tutor.errors import SessionStateError
from vocab_tutor.models import (
    Answer, DifficultyTier, MatchingQuestion, MultipleChoiceQuestion, QuestionType, TestFilters,
    TestResults, TestSession, TestSettings, TrueFalseQuestion, TypingQuestion,
)
from vocab_tutor.orchestrator import (
    build_session, complete_session, filter_items, find_urgent_review_items, grade_answer,
    item_performance, record_answers, sort_by_difficulty, suggest_next_test_parameters,
)


def _correct_submission(question):
    return question.correct_answer


def _wrong_submission(question):
    if isinstance(question, MatchingQuestion):
        return {}
    if isinstance(question, TrueFalseQuestion):
        return "false" if question.correct_answer == "true" else "true"
    return "definitely wrong"


_ids = itertools.count()


def _typing(item_id, correct):
    return TypingQuestion(
        id=f"t{next(_ids)}", item_id=item_id, prompt="?", correct_answer="x",
        is_correct=correct, time_spent_seconds=10,
    )


def _history_session(questions, completed_at, percentage=None):
    if percentage is None:
        correct = sum(1 for q in questions if q.is_correct)
        percentage = round(correct / len(questions) * 100, 1) if questions else 0.0
    else:
        correct = 0
    return TestSession(
        id=f"s-{completed_at.isoformat()}",
        questions=questions,
        settings=TestSettings(),
        started_at=completed_at - timedelta(minutes=5),
        completed_at=completed_at,
        results=TestResults(
            score=correct, percentage=percentage, total_questions=len(questions),
            correct_answers=correct, time_spent=0, average_time_per_question=0,
        ),
    )


# --- filtering and assembly ---


def test_filter_items_empty_filters_keep_everything(pool):
    assert filter_items(pool) == pool
    assert filter_items(pool, [], []) == pool


def test_filter_items_by_category_and_difficulty(pool):
    food = filter_items(pool, categories=["food"])
    assert {w.category for w in food} == {"food"}
    hard_verbs = filter_items(pool, ["verbs"], [DifficultyTier.HARD])
    assert [w.term for w in hard_verbs] == ["negotiate", "ponder"]
    assert filter_items(pool, difficulties=["easy"]) == [w for w in pool if w.difficulty == DifficultyTier.EASY]


def test_sort_by_difficulty(pool):
    hardest = sort_by_difficulty(pool, hardest_first=True)
    assert [w.difficulty for w in hardest[:3]] == [DifficultyTier.HARD] * 3
    easiest = sort_by_difficulty(pool)
    assert easiest[0].difficulty == DifficultyTier.EASY


def test_build_session_uses_filtered_pool(pool, rng, now):
    session = build_session(pool, TestFilters(categories=["food"]), TestSettings(question_count=10), rng, now)
    food_ids = {w.id for w in pool if w.category == "food"}
    for q in session.questions:
        ids = q.item_ids if isinstance(q, MatchingQuestion) else [q.item_id]
        assert set(ids) <= food_ids
    assert session.started_at == now
    assert not session.is_completed


def test_build_session_respects_question_count(pool, rng, now):
    session = build_session(pool, TestFilters(), TestSettings(question_count=3), rng, now)
    assert len(session.questions) == 3


def test_build_session_single_type(pool, rng, now):
    filters = TestFilters(question_type=QuestionType.TRUE_FALSE)
    session = build_session(pool, filters, TestSettings(question_count=5), rng, now)
    assert len(session.questions) == 5
    assert all(q.type == QuestionType.TRUE_FALSE for q in session.questions)
    assert session.question_type == QuestionType.TRUE_FALSE


def test_build_session_is_deterministic(pool, now):
    a = build_session(pool, TestFilters(), TestSettings(), random.Random(9), now)
    b = build_session(pool, TestFilters(), TestSettings(), random.Random(9), now)
    assert a == b


def _difficulty_sequence(session, pool):
    by_id = {w.id: w for w in pool}
    order = {DifficultyTier.EASY: 1, DifficultyTier.MEDIUM: 2, DifficultyTier.HARD: 3}
    ranks = []
    for q in session.questions:
        ids = q.item_ids if isinstance(q, MatchingQuestion) else [q.item_id]
        ranks.extend(order[by_id[i].difficulty] for i in ids)
    return ranks


def test_build_session_hardest_first_single_type(pool, now):
    filters = TestFilters(hardest_first=True, question_type=QuestionType.TYPING)
    for seed in range(10):
        session = build_session(pool, filters, TestSettings(question_count=3), random.Random(seed), now)
        assert _difficulty_sequence(session, pool) == [3, 3, 3]


def test_build_session_hardest_first_mixed(pool, now):
    for seed in range(20):
        session = build_session(
            pool, TestFilters(hardest_first=True), TestSettings(question_count=3), random.Random(seed), now,
        )
        ranks = _difficulty_sequence(session, pool)
        assert ranks[0] == 3
        assert ranks == sorted(ranks, reverse=True)


# --- grading ---


def test_grade_multiple_choice():
    q = MultipleChoiceQuestion(id="q", item_id=1, prompt="?", correct_answer="fruit", options=["fruit", "car"])
    assert grade_answer(q, "fruit")
    assert grade_answer(q, " fruit ")
    assert not grade_answer(q, "car")
    assert not grade_answer(q, 3)


def test_grade_typing_uses_similarity():
    q = TypingQuestion(id="q", item_id=1, prompt="?", correct_answer="a small round fruit")
    assert grade_answer(q, "A small round frut")
    assert not grade_answer(q, "a car")
    assert not grade_answer(q, ["a small round fruit"])


def test_grade_true_false():
    q = TrueFalseQuestion(id="q", item_id=1, prompt="?", correct_answer="false")
    assert grade_answer(q, False)
    assert grade_answer(q, "false")
    assert grade_answer(q, " FALSE ")
    assert not grade_answer(q, True)
    assert not grade_answer(q, "maybe")


def test_grade_matching_entry_by_entry():
    q = MatchingQuestion(
        id="q", item_id=1, terms=["a", "b"], meanings=["2", "1"], correct_answer={"a": "1", "b": "2"},
    )
    assert grade_answer(q, {"a": "1", "b": "2"})
    assert not grade_answer(q, {"a": "2", "b": "1"})
    assert not grade_answer(q, {"a": "1"})
    assert not grade_answer(q, "a=1,b=2")


def test_grade_timeout_is_incorrect():
    q = TypingQuestion(id="q", item_id=1, prompt="?", correct_answer="x")
    assert grade_answer(q, None) is False


def test_record_answers_ignores_unknown_questions(pool, rng, now):
    session = build_session(pool, TestFilters(), TestSettings(question_count=2), rng, now)
    first = session.questions[0]
    record_answers(session, [("nope", "x", 1), (first.id, _correct_submission(first), 4)])
    assert first.is_correct is True
    assert first.time_spent_seconds == 4
    assert session.questions[1].is_correct is None


# --- completion ---


def test_complete_session_updates_schedules(pool, rng, now):
    session = build_session(pool, TestFilters(question_type=QuestionType.TYPING), TestSettings(question_count=4), rng, now)
    answers = [Answer(q.id, _correct_submission(q), 5) for q in session.questions]
    updated = complete_session(session, answers, pool, now)

    assert set(updated) == {q.item_id for q in session.questions}
    for item in updated.values():
        assert item.schedule.repetitions == 1
        assert item.schedule.interval_days == 1
        assert item.schedule.last_reviewed_at == now
        assert item.schedule.next_review_at == now + timedelta(days=1)
        assert item.correct_count == 1
    assert session.completed_at == now
    assert session.results.percentage == 100.0
    assert session.results.correct_answers == 4
    assert session.results.average_time_per_question == 5
    # the caller's items are untouched
    assert all(w.schedule.repetitions == 0 for w in pool)


def test_complete_session_failures_reset_schedule(pool, rng, now):
    session = build_session(pool, TestFilters(), TestSettings(question_count=5), rng, now)
    answers = [Answer(q.id, _wrong_submission(q), 12) for q in session.questions]
    updated = complete_session(session, answers, {w.id: w for w in pool}, now)
    for item in updated.values():
        assert item.schedule.repetitions == 0
        assert item.schedule.interval_days == 1
        assert item.incorrect_count == 1
    assert session.results.percentage == 0.0


def test_complete_session_skips_unanswered(pool, rng, now):
    session = build_session(pool, TestFilters(question_type=QuestionType.TYPING), TestSettings(question_count=4), rng, now)
    first = session.questions[0]
    updated = complete_session(session, [Answer(first.id, first.correct_answer, 3)], pool, now)
    assert list(updated) == [first.item_id]
    assert session.results.correct_answers == 1
    assert session.results.total_questions == 4
    assert session.results.percentage == 25.0


def test_complete_session_twice_raises(pool, rng, now):
    session = build_session(pool, TestFilters(), TestSettings(question_count=2), rng, now)
    complete_session(session, [], pool, now)
    with pytest.raises(SessionStateError):
        complete_session(session, [], pool, now)


def test_complete_session_malformed_answers_never_raise(pool, rng, now):
    session = build_session(pool, TestFilters(), TestSettings(question_count=10), rng, now)
    answers = [Answer(q.id, 42, 5) for q in session.questions]
    complete_session(session, answers, pool, now)
    assert session.results.correct_answers == 0


# --- history analysis ---


def test_urgent_review_two_of_five(pool, now):
    apple = pool[0]
    outcomes = [True, False, True, False, False]
    history = [
        _history_session([_typing(apple.id, ok)], now - timedelta(days=30 - i))
        for i, ok in enumerate(outcomes)
    ]
    urgent = find_urgent_review_items(history, pool, now)
    assert apple in urgent


def test_urgent_review_recent_failure_window(pool, now):
    bread, cheese = pool[1], pool[2]
    history = [
        _history_session([_typing(bread.id, True), _typing(cheese.id, True)], now - timedelta(days=20)),
        _history_session([_typing(bread.id, True), _typing(cheese.id, True)], now - timedelta(days=15)),
        _history_session([_typing(bread.id, True), _typing(cheese.id, False)], now - timedelta(days=2)),
        _history_session([_typing(bread.id, False), _typing(cheese.id, True)], now - timedelta(days=10)),
    ]
    # both sit at 75%; only cheese failed inside the last week
    urgent = find_urgent_review_items(history, pool, now)
    assert cheese in urgent
    assert bread not in urgent


def test_urgent_review_sorted_worst_first(pool, now):
    history = [
        _history_session([_typing(1, False), _typing(2, True), _typing(3, False)], now - timedelta(days=1)),
        _history_session([_typing(1, False), _typing(2, False), _typing(3, True)], now - timedelta(days=1, hours=1)),
    ]
    urgent = find_urgent_review_items(history, pool, now)
    assert [w.id for w in urgent][0] == 1
    assert {w.id for w in urgent} == {1, 2, 3}


def test_urgent_review_ignores_incomplete_sessions_and_unknown_items(pool, now):
    unfinished = TestSession(
        id="open", questions=[_typing(1, False)], settings=TestSettings(), started_at=now,
    )
    assert find_urgent_review_items([unfinished], pool, now) == []
    assert item_performance([unfinished]) == {}


def test_suggest_without_history():
    rec = suggest_next_test_parameters([])
    assert rec.question_type is None
    assert rec.difficulties == [DifficultyTier.EASY, DifficultyTier.MEDIUM]
    assert rec.settings.question_count == 10
    assert rec.settings.instant_feedback


def test_suggest_focuses_on_weak_type(now):
    weak = [
        TypingQuestion(id=f"t{i}", item_id=i, prompt="?", correct_answer="x", is_correct=i == 0)
        for i in range(4)
    ]
    strong = [
        MultipleChoiceQuestion(id=f"m{i}", item_id=i, prompt="?", correct_answer="x", options=["x"], is_correct=True)
        for i in range(4)
    ]
    history = [_history_session(weak + strong, now - timedelta(days=1))]
    rec = suggest_next_test_parameters(history)
    assert rec.question_type == QuestionType.TYPING
    assert rec.settings.question_count == 15
    assert rec.difficulties == [DifficultyTier.EASY, DifficultyTier.MEDIUM]


def test_suggest_balanced_harder_session(now):
    questions = [
        MultipleChoiceQuestion(id=f"m{i}", item_id=i, prompt="?", correct_answer="x", options=["x"], is_correct=True)
        for i in range(5)
    ]
    history = [_history_session(list(questions), now - timedelta(days=d)) for d in range(1, 4)]
    rec = suggest_next_test_parameters(history)
    assert rec.question_type is None
    assert rec.settings.question_count == 20
    assert not rec.settings.show_correct_answer
    assert rec.difficulties == [DifficultyTier.MEDIUM, DifficultyTier.HARD]


def test_suggest_difficulty_uses_three_most_recent(now):
    questions = [
        MultipleChoiceQuestion(id="m", item_id=1, prompt="?", correct_answer="x", options=["x"], is_correct=True)
    ]
    history = [
        _history_session(list(questions), now - timedelta(days=1), percentage=75.0),
        _history_session(list(questions), now - timedelta(days=2), percentage=70.0),
        _history_session(list(questions), now - timedelta(days=3), percentage=80.0),
        _history_session(list(questions), now - timedelta(days=4), percentage=0.0),
    ]
    rec = suggest_next_test_parameters(history)
    assert rec.difficulties == [DifficultyTier.EASY, DifficultyTier.MEDIUM, DifficultyTier.HARD]
