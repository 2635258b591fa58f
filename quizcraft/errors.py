"""
Exception hierarchy shared by the QuizCraft components.
"""


class QuizCraftError(Exception):
    """Base exception for QuizCraft errors."""
    pass


class SourceUnavailableError(QuizCraftError):
    """Raised when a question source cannot be reached or answers with a non-JSON/non-2xx response."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class MalformedPayloadError(QuizCraftError):
    """Raised when a payload cannot be parsed as JSON."""
    pass


class QuestionSetNotFoundError(QuizCraftError):
    """Raised when a requested question set matches no file."""
    pass


class StorageError(QuizCraftError):
    """Raised by result store backends when reading or writing fails."""
    pass
