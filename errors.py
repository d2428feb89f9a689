# errors.py


class QuizError(Exception):
    """Base class for quiz generation failures surfaced to callers."""


class ContentNotFoundError(QuizError):
    """No backing content exists for the requested scope; nothing was generated."""


class QuizGenerationError(QuizError):
    """Coarse user-facing failure: the language model call did not succeed."""

    def __init__(self, message: str = "Failed to generate quiz questions"):
        super().__init__(message)
