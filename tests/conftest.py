import random
from datetime import datetime

import pytest

from vocab_tutor.models import DifficultyTier, new_item

NOW = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_vocab.db")
    return db_path


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def pool():
    """Ten words across two categories and all difficulty tiers."""
    words = [
        ("apple", "a red fruit", "food", DifficultyTier.EASY),
        ("bread", "baked dough", "food", DifficultyTier.EASY),
        ("cheese", "made from milk", "food", DifficultyTier.MEDIUM),
        ("grape", "a small round fruit", "food", DifficultyTier.MEDIUM),
        ("saffron", "an expensive spice", "food", DifficultyTier.HARD),
        ("run", "move fast on foot", "verbs", DifficultyTier.EASY),
        ("write", "put words on paper", "verbs", DifficultyTier.EASY),
        ("negotiate", "reach an agreement by discussion", "verbs", DifficultyTier.HARD),
        ("wander", "walk without a goal", "verbs", DifficultyTier.MEDIUM),
        ("ponder", "think about carefully", "verbs", DifficultyTier.HARD),
    ]
    return [
        new_item(i, term, meaning, NOW, category=category, difficulty=difficulty)
        for i, (term, meaning, category, difficulty) in enumerate(words, 1)
    ]
