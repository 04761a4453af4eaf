"""Lenient validation of typed answers."""
import re

# Script blocks kept verbatim by normalize(), on top of word characters and whitespace.
ALLOWED_SCRIPT_RANGES = [
    ("\u0600", "\u06FF"),  # Arabic
    ("\u0750", "\u077F"),  # Arabic Supplement
    ("\uFB50", "\uFDFF"),  # Arabic Presentation Forms-A
    ("\uFE70", "\uFEFF"),  # Arabic Presentation Forms-B
]

SIMILARITY_THRESHOLD = 0.85
MIN_FUZZY_LENGTH = 10


def _strip_pattern(ranges) -> re.Pattern:
    allowed = "".join(f"{lo}-{hi}" for lo, hi in ranges)
    return re.compile(f"[^{allowed}\\w\\s]")


_STRIP_RE = _strip_pattern(ALLOWED_SCRIPT_RANGES)
_SPACE_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    text = text.strip().lower()
    text = _STRIP_RE.sub("", text)
    return _SPACE_RE.sub(" ", text).strip()


def levenshtein_distance(s1: str, s2: str) -> int:
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if len(s2) == 0:
        return len(s1)

    previous_row = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def similarity(s1: str, s2: str) -> float:
    """1.0 for identical strings, down to 0.0 for nothing in common."""
    longest = max(len(s1), len(s2))
    if longest == 0:
        return 1.0
    return 1 - levenshtein_distance(s1, s2) / longest


def validate_typing_answer(user_answer: str, correct_answer: str) -> bool:
    """Accept exact matches after normalization, and near misses on long answers.

    Answers of 10 characters or fewer must match exactly, since a single edit
    can turn a short word into another word.
    """
    user = normalize(user_answer)
    correct = normalize(correct_answer)

    if user == correct:
        return True

    if len(correct) > MIN_FUZZY_LENGTH:
        return similarity(user, correct) >= SIMILARITY_THRESHOLD

    return False
