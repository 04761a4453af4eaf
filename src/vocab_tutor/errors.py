"""Exceptions raised by the tutor core."""


class VocabTutorError(Exception):
    """Base class for tutor errors."""


class InsufficientPoolError(VocabTutorError):
    """Not enough vocabulary items to build the requested question."""


class InvalidQualityError(VocabTutorError, ValueError):
    """Scheduler received a quality outside 0-5. Always a caller bug."""


class SessionStateError(VocabTutorError):
    """Operation not valid for the session's current state."""
