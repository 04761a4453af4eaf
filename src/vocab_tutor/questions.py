"""Question generation for vocabulary tests.

Every generator takes the caller's ``random.Random`` instance and draws all
of its choices (direction, distractors, shuffles and question ids) from it,
so a seeded generator always yields the same questions.

Generators degrade instead of failing when the pool is thin: multiple choice
drops to fewer options, true/false falls back to a placeholder meaning and
the mixed generator swaps matching for multiple choice. Only an explicit
matching request with fewer than four items raises InsufficientPoolError.
"""
import logging
import random
import uuid

from vocab_tutor.errors import InsufficientPoolError
from vocab_tutor.models import (
    MatchingQuestion, MultipleChoiceQuestion, QuestionType, TrueFalseQuestion,
    TypingQuestion, VocabularyItem, difficulty_score,
)

logger = logging.getLogger(__name__)

DEFAULT_DISTRACTOR_COUNT = 3
MIN_MATCHING_ITEMS = 4
MAX_MATCHING_ITEMS = 6
MIXED_MATCHING_ITEMS = 4
PLACEHOLDER_MEANING = "(no other meaning available)"

BASE_TYPES = [QuestionType.MULTIPLE_CHOICE, QuestionType.TYPING, QuestionType.TRUE_FALSE]


def _question_id(prefix: str, rng: random.Random) -> str:
    return f"{prefix}_{uuid.UUID(int=rng.getrandbits(128)).hex[:12]}"


def _shuffled(values: list, rng: random.Random) -> list:
    values = list(values)
    rng.shuffle(values)
    return values


def _answer_text(item: VocabularyItem, term_to_meaning: bool) -> str:
    return item.meaning if term_to_meaning else item.term


def select_distractors(
    item: VocabularyItem,
    pool: list,
    rng: random.Random,
    count: int = DEFAULT_DISTRACTOR_COUNT,
    term_to_meaning: bool = True,
) -> list[str]:
    """Pick up to ``count`` wrong answers for ``item``.

    Candidates come in tiers: same category, then same difficulty, then the
    rest of the pool. Each tier is shuffled and drained before the next one
    is touched. Texts matching the correct answer or an earlier pick
    (ignoring case and surrounding whitespace) are skipped.
    """
    others = [w for w in pool if w.id != item.id]
    same_category = [w for w in others if item.category and w.category == item.category]
    taken = {w.id for w in same_category}
    same_difficulty = [w for w in others if w.difficulty == item.difficulty and w.id not in taken]
    taken.update(w.id for w in same_difficulty)
    rest = [w for w in others if w.id not in taken]

    seen = {_answer_text(item, term_to_meaning).strip().lower()}
    picked = []
    for tier in (same_category, same_difficulty, rest):
        for candidate in _shuffled(tier, rng):
            if len(picked) >= count:
                return picked
            text = _answer_text(candidate, term_to_meaning)
            key = text.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            picked.append(text)
    return picked


def generate_multiple_choice(
    item: VocabularyItem,
    pool: list,
    rng: random.Random,
    distractor_count: int = DEFAULT_DISTRACTOR_COUNT,
) -> MultipleChoiceQuestion:
    term_to_meaning = rng.random() < 0.5
    if term_to_meaning:
        prompt = f'What does "{item.term}" mean?'
    else:
        prompt = f'Which word means "{item.meaning}"?'
    correct = _answer_text(item, term_to_meaning)

    distractors = select_distractors(item, pool, rng, distractor_count, term_to_meaning)
    if len(distractors) < distractor_count:
        logger.warning(
            "Only %d of %d distractors available for item %s",
            len(distractors), distractor_count, item.id,
        )

    return MultipleChoiceQuestion(
        id=_question_id("mcq", rng),
        item_id=item.id,
        prompt=prompt,
        correct_answer=correct,
        options=_shuffled([correct] + distractors, rng),
        difficulty_score=difficulty_score(item.difficulty),
        term_to_meaning=term_to_meaning,
    )


def generate_typing(item: VocabularyItem, rng: random.Random) -> TypingQuestion:
    term_to_meaning = rng.random() < 0.5
    if term_to_meaning:
        prompt = f'Type the meaning of "{item.term}"'
    else:
        prompt = f'Type the word that means "{item.meaning}"'
    return TypingQuestion(
        id=_question_id("typing", rng),
        item_id=item.id,
        prompt=prompt,
        correct_answer=_answer_text(item, term_to_meaning),
        difficulty_score=difficulty_score(item.difficulty),
        term_to_meaning=term_to_meaning,
    )


def generate_matching(items: list, rng: random.Random) -> MatchingQuestion:
    """Match terms to meanings for the first 4-6 of ``items``."""
    if len(items) < MIN_MATCHING_ITEMS:
        raise InsufficientPoolError(
            f"Matching needs at least {MIN_MATCHING_ITEMS} items, got {len(items)}"
        )
    selected = items[:MAX_MATCHING_ITEMS]
    scores = [difficulty_score(w.difficulty) for w in selected]
    return MatchingQuestion(
        id=_question_id("matching", rng),
        item_id=selected[0].id,
        terms=[w.term for w in selected],
        meanings=_shuffled([w.meaning for w in selected], rng),
        correct_answer={w.term: w.meaning for w in selected},
        item_ids=[w.id for w in selected],
        difficulty_score=int(sum(scores) / len(scores) + 0.5),
    )


def _false_meaning(item: VocabularyItem, pool: list, rng: random.Random):
    others = [w for w in pool if w.id != item.id and w.meaning.strip().lower() != item.meaning.strip().lower()]
    same_category = [w for w in others if item.category and w.category == item.category]
    candidates = same_category or others
    if not candidates:
        return None
    return rng.choice(candidates).meaning


def generate_true_false(item: VocabularyItem, pool: list, rng: random.Random) -> TrueFalseQuestion:
    is_true = rng.random() < 0.5
    low_confidence = False
    if is_true:
        shown = item.meaning
    else:
        shown = _false_meaning(item, pool, rng)
        if shown is None:
            logger.warning("No other meaning to contrast with item %s, using placeholder", item.id)
            shown = PLACEHOLDER_MEANING
            low_confidence = True
    return TrueFalseQuestion(
        id=_question_id("tf", rng),
        item_id=item.id,
        prompt=f'"{item.term}" means "{shown}"',
        correct_answer="true" if is_true else "false",
        shown_meaning=shown,
        low_confidence=low_confidence,
        difficulty_score=difficulty_score(item.difficulty),
    )


def _generate_one(kind: QuestionType, items: list, cursor: int, pool: list, rng: random.Random):
    """Build one question of ``kind`` at ``cursor``; returns (question, items used)."""
    item = items[cursor]
    if kind == QuestionType.MULTIPLE_CHOICE:
        return generate_multiple_choice(item, pool, rng), 1
    elif kind == QuestionType.TYPING:
        return generate_typing(item, rng), 1
    elif kind == QuestionType.TRUE_FALSE:
        return generate_true_false(item, pool, rng), 1
    elif kind == QuestionType.MATCHING:
        group = items[cursor:cursor + MIXED_MATCHING_ITEMS]
        return generate_matching(group, rng), len(group)
    raise ValueError(f"Unknown question type: {kind!r}")


def generate_mixed(pool: list, count: int, rng: random.Random, keep_order: bool = False) -> list:
    """Up to ``count`` questions of random types, each item used at most once.

    Items are drawn in random order, or in pool order with ``keep_order``.
    Stops early without error when the pool runs out.
    """
    items = list(pool) if keep_order else _shuffled(pool, rng)
    kinds = list(BASE_TYPES)
    if len(pool) >= MIN_MATCHING_ITEMS:
        kinds.append(QuestionType.MATCHING)

    questions = []
    cursor = 0
    while len(questions) < count and cursor < len(items):
        kind = rng.choice(kinds)
        if kind == QuestionType.MATCHING and len(items) - cursor < MIXED_MATCHING_ITEMS:
            logger.debug("Matching needs %d items, %d left; using multiple choice",
                         MIXED_MATCHING_ITEMS, len(items) - cursor)
            kind = QuestionType.MULTIPLE_CHOICE
        question, used = _generate_one(kind, items, cursor, pool, rng)
        questions.append(question)
        cursor += used
    return questions


def generate_questions(
    kind: QuestionType, pool: list, count: int, rng: random.Random, keep_order: bool = False,
) -> list:
    """Up to ``count`` questions of a single type.

    Matching questions take 4 items each; leftovers too few for another
    board are dropped.
    """
    kind = QuestionType(kind)
    items = list(pool) if keep_order else _shuffled(pool, rng)
    questions = []
    cursor = 0
    while len(questions) < count and cursor < len(items):
        if kind == QuestionType.MATCHING and len(items) - cursor < MIN_MATCHING_ITEMS:
            break
        question, used = _generate_one(kind, items, cursor, pool, rng)
        questions.append(question)
        cursor += used
    return questions
