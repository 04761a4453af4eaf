"""Data classes for the vocabulary tutor domain model."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional, Union


class DifficultyTier(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TYPING = "typing"
    MATCHING = "matching"
    TRUE_FALSE = "true_false"


DIFFICULTY_SCORES = {
    DifficultyTier.EASY: 1,
    DifficultyTier.MEDIUM: 3,
    DifficultyTier.HARD: 5,
}

# Ordering used when sorting hardest-first.
DIFFICULTY_ORDER = {
    DifficultyTier.EASY: 1,
    DifficultyTier.MEDIUM: 2,
    DifficultyTier.HARD: 3,
}


def difficulty_score(tier: DifficultyTier) -> int:
    return DIFFICULTY_SCORES.get(DifficultyTier(tier), 3)


@dataclass(frozen=True)
class ScheduleState:
    ease_factor: float = 2.5
    interval_days: int = 1
    repetitions: int = 0
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None
    last_quality: Optional[int] = None


@dataclass
class VocabularyItem:
    id: int
    term: str
    meaning: str
    note: str = ""
    category: str = ""
    difficulty: DifficultyTier = DifficultyTier.MEDIUM
    correct_count: int = 0
    incorrect_count: int = 0
    schedule: ScheduleState = field(default_factory=ScheduleState)


def new_item(
    id: int,
    term: str,
    meaning: str,
    now: datetime,
    note: str = "",
    category: str = "",
    difficulty: DifficultyTier = DifficultyTier.MEDIUM,
) -> VocabularyItem:
    """A freshly added term, due for review immediately."""
    return VocabularyItem(
        id=id,
        term=term,
        meaning=meaning,
        note=note,
        category=category,
        difficulty=DifficultyTier(difficulty),
        schedule=ScheduleState(next_review_at=now),
    )


@dataclass(kw_only=True)
class MultipleChoiceQuestion:
    id: str
    item_id: int
    prompt: str
    correct_answer: str
    options: list[str]
    difficulty_score: int = 3
    term_to_meaning: bool = True
    user_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    time_spent_seconds: Optional[float] = None
    type: QuestionType = field(default=QuestionType.MULTIPLE_CHOICE, init=False)


@dataclass(kw_only=True)
class TypingQuestion:
    id: str
    item_id: int
    prompt: str
    correct_answer: str
    difficulty_score: int = 3
    term_to_meaning: bool = True
    user_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    time_spent_seconds: Optional[float] = None
    type: QuestionType = field(default=QuestionType.TYPING, init=False)


@dataclass(kw_only=True)
class MatchingQuestion:
    id: str
    item_id: int
    terms: list[str]
    meanings: list[str]
    correct_answer: dict[str, str]
    item_ids: list[int] = field(default_factory=list)
    difficulty_score: int = 3
    user_answer: Optional[dict] = None
    is_correct: Optional[bool] = None
    time_spent_seconds: Optional[float] = None
    type: QuestionType = field(default=QuestionType.MATCHING, init=False)

    @property
    def prompt(self) -> dict:
        return {"terms": list(self.terms), "meanings": list(self.meanings)}


@dataclass(kw_only=True)
class TrueFalseQuestion:
    id: str
    item_id: int
    prompt: str
    correct_answer: str  # "true" or "false"
    shown_meaning: str = ""
    low_confidence: bool = False
    difficulty_score: int = 3
    user_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    time_spent_seconds: Optional[float] = None
    type: QuestionType = field(default=QuestionType.TRUE_FALSE, init=False)


TestQuestion = Union[MultipleChoiceQuestion, TypingQuestion, MatchingQuestion, TrueFalseQuestion]


@dataclass
class TestSettings:
    __test__ = False

    question_count: int = 10
    per_question_time_limit: Optional[float] = 30
    time_limit: Optional[int] = None  # whole session, seconds
    show_correct_answer: bool = True
    instant_feedback: bool = True


@dataclass
class TestFilters:
    __test__ = False

    categories: list[str] = field(default_factory=list)
    difficulties: list[DifficultyTier] = field(default_factory=list)
    hardest_first: bool = False
    question_type: Optional[QuestionType] = None  # None = mixed


@dataclass
class TestResults:
    __test__ = False

    score: int
    percentage: float
    total_questions: int
    correct_answers: int
    time_spent: float
    average_time_per_question: float


@dataclass
class TestSession:
    __test__ = False

    id: str
    questions: list
    settings: TestSettings
    started_at: datetime
    completed_at: Optional[datetime] = None
    results: Optional[TestResults] = None
    question_type: Optional[QuestionType] = None  # None = mixed

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class Answer(NamedTuple):
    question_id: str
    submitted: object
    time_spent_seconds: Optional[float] = None


@dataclass
class TestRecommendation:
    __test__ = False

    question_type: Optional[QuestionType]  # None = mixed
    reason: str
    settings: TestSettings
    difficulties: list[DifficultyTier]
