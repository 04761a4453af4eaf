"""SQLite storage for vocabulary items, test history and settings."""
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from vocab_tutor.models import (
    DifficultyTier, MatchingQuestion, MultipleChoiceQuestion, QuestionType, ScheduleState,
    TestResults, TestSession, TestSettings, TrueFalseQuestion, TypingQuestion, VocabularyItem,
)

DEFAULT_DB_PATH = str(Path.home() / ".vocab_tutor" / "vocab.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS vocabulary (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    term TEXT NOT NULL,
    meaning TEXT NOT NULL,
    note TEXT DEFAULT '',
    category TEXT DEFAULT '',
    difficulty TEXT DEFAULT 'medium',
    correct_count INTEGER DEFAULT 0,
    incorrect_count INTEGER DEFAULT 0,
    ease_factor REAL DEFAULT 2.5,
    interval_days INTEGER DEFAULT 1,
    repetitions INTEGER DEFAULT 0,
    last_reviewed_at TEXT,
    next_review_at TEXT,
    last_quality INTEGER
);

CREATE TABLE IF NOT EXISTS test_sessions (
    id TEXT PRIMARY KEY,
    question_type TEXT,
    settings TEXT NOT NULL,
    questions TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    results TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""

QUESTION_CLASSES = {
    QuestionType.MULTIPLE_CHOICE: MultipleChoiceQuestion,
    QuestionType.TYPING: TypingQuestion,
    QuestionType.MATCHING: MatchingQuestion,
    QuestionType.TRUE_FALSE: TrueFalseQuestion,
}


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_item(row: sqlite3.Row) -> VocabularyItem:
    return VocabularyItem(
        id=row["id"],
        term=row["term"],
        meaning=row["meaning"],
        note=row["note"] or "",
        category=row["category"] or "",
        difficulty=DifficultyTier(row["difficulty"]),
        correct_count=row["correct_count"],
        incorrect_count=row["incorrect_count"],
        schedule=ScheduleState(
            ease_factor=row["ease_factor"],
            interval_days=row["interval_days"],
            repetitions=row["repetitions"],
            last_reviewed_at=_parse_ts(row["last_reviewed_at"]),
            next_review_at=_parse_ts(row["next_review_at"]),
            last_quality=row["last_quality"],
        ),
    )


def add_item(
    db_path: str,
    term: str,
    meaning: str,
    now: datetime,
    note: str = "",
    category: str = "",
    difficulty: DifficultyTier = DifficultyTier.MEDIUM,
) -> VocabularyItem:
    """Insert a new term, due immediately, and return it with its id."""
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO vocabulary (term, meaning, note, category, difficulty, next_review_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (term, meaning, note, category, DifficultyTier(difficulty).value, _ts(now)),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM vocabulary WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return _row_to_item(row)


def get_item(db_path: str, item_id: int) -> Optional[VocabularyItem]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM vocabulary WHERE id = ?", (item_id,)).fetchone()
    conn.close()
    return _row_to_item(row) if row else None


def get_items(db_path: str) -> list[VocabularyItem]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM vocabulary ORDER BY id").fetchall()
    conn.close()
    return [_row_to_item(r) for r in rows]


def save_item(db_path: str, item: VocabularyItem) -> None:
    """Write back an item's statistics and schedule state."""
    s = item.schedule
    conn = get_connection(db_path)
    conn.execute(
        """UPDATE vocabulary SET term=?, meaning=?, note=?, category=?, difficulty=?,
        correct_count=?, incorrect_count=?, ease_factor=?, interval_days=?, repetitions=?,
        last_reviewed_at=?, next_review_at=?, last_quality=?
        WHERE id=?""",
        (
            item.term, item.meaning, item.note, item.category, DifficultyTier(item.difficulty).value,
            item.correct_count, item.incorrect_count, float(s.ease_factor), int(s.interval_days),
            s.repetitions, _ts(s.last_reviewed_at), _ts(s.next_review_at), s.last_quality, item.id,
        ),
    )
    conn.commit()
    conn.close()


def _question_to_dict(question) -> dict:
    data = {k: v for k, v in vars(question).items() if k != "type"}
    data["type"] = question.type.value
    return data


def _question_from_dict(data: dict):
    data = dict(data)
    cls = QUESTION_CLASSES[QuestionType(data.pop("type"))]
    return cls(**data)


def save_session(db_path: str, session: TestSession) -> None:
    """Insert or replace a test session with its questions and results."""
    conn = get_connection(db_path)
    conn.execute(
        """INSERT OR REPLACE INTO test_sessions
        (id, question_type, settings, questions, started_at, completed_at, results)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            session.id,
            session.question_type.value if session.question_type else None,
            json.dumps(vars(session.settings)),
            json.dumps([_question_to_dict(q) for q in session.questions]),
            _ts(session.started_at),
            _ts(session.completed_at),
            json.dumps(vars(session.results)) if session.results else None,
        ),
    )
    conn.commit()
    conn.close()


def get_sessions(db_path: str, limit: Optional[int] = None) -> list[TestSession]:
    """Stored sessions, most recent first."""
    conn = get_connection(db_path)
    query = "SELECT * FROM test_sessions ORDER BY COALESCE(completed_at, started_at) DESC"
    if limit is not None:
        rows = conn.execute(query + " LIMIT ?", (limit,)).fetchall()
    else:
        rows = conn.execute(query).fetchall()
    conn.close()
    return [
        TestSession(
            id=r["id"],
            questions=[_question_from_dict(q) for q in json.loads(r["questions"])],
            settings=TestSettings(**json.loads(r["settings"])),
            started_at=_parse_ts(r["started_at"]),
            completed_at=_parse_ts(r["completed_at"]),
            results=TestResults(**json.loads(r["results"])) if r["results"] else None,
            question_type=QuestionType(r["question_type"]) if r["question_type"] else None,
        )
        for r in rows
    ]


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_test_settings(db_path: str) -> TestSettings:
    """TestSettings from stored user settings, falling back to defaults."""
    defaults = TestSettings()
    return TestSettings(
        question_count=int(get_setting(db_path, "question_count", str(defaults.question_count))),
        per_question_time_limit=float(
            get_setting(db_path, "per_question_time_limit", str(defaults.per_question_time_limit))
        ),
        show_correct_answer=_flag(get_setting(db_path, "show_correct_answer", str(defaults.show_correct_answer))),
        instant_feedback=_flag(get_setting(db_path, "instant_feedback", str(defaults.instant_feedback))),
    )
