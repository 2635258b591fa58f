"""
Core data models for QuizCraft.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


QUESTION_TYPES = ("multiple", "boolean", "short")
DEFAULT_QUESTION_TYPE = "multiple"


@dataclass(frozen=True)
class QuestionSetDescriptor:
    """A discoverable question set: its file name and display title."""
    filename: str
    title: str

    def to_dict(self) -> Dict[str, str]:
        return {"filename": self.filename, "title": self.title}


@dataclass
class Question:
    """Canonical question record produced by normalization."""
    id: int
    type: str
    question: str
    options: Dict[str, str] = field(default_factory=dict)
    answer: Optional[str] = None
    explanation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-ready form, omitting absent optional fields."""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "question": self.question,
            "options": dict(self.options),
        }
        if self.answer is not None:
            data["answer"] = self.answer
        if self.explanation is not None:
            data["explanation"] = self.explanation
        return data


@dataclass
class QuizSession:
    """The active slice of questions and the user's progress through it."""
    questions: List[Question]
    current_index: int = 0
    answers: Dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ScoreResult:
    """Aggregate outcome of a submitted session."""
    correct_count: int
    total: int
    percentage: int


@dataclass(frozen=True)
class ReviewItem:
    """One row of the answer review shown after submit."""
    question_id: int
    question: str
    user_answer: Optional[str]
    correct_answer: Optional[str]
    is_correct: bool
    explanation: Optional[str] = None


@dataclass(frozen=True)
class SubmissionSnapshot:
    """Frozen view of a session at submit time, consumed by the scorer."""
    session_filename: Optional[str]
    session_index: int
    total_sessions: int
    questions: List[Question]
    answers: Dict[int, str]


@dataclass(frozen=True)
class StoredResult:
    """A persisted quiz attempt."""
    session_filename: str
    score: int
    total: int
    percentage: int
    date: str
    answers: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionFilename": self.session_filename,
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "date": self.date,
            "answers": dict(self.answers),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "StoredResult":
        return StoredResult(
            session_filename=str(data["sessionFilename"]),
            score=int(data.get("score", 0)),
            total=int(data.get("total", 0)),
            percentage=int(data.get("percentage", 0)),
            date=str(data.get("date", "")),
            answers=dict(data.get("answers") or {}),
        )


@dataclass
class QuizSettings:
    """Runtime settings for the server, the loader and the result store."""
    host: str = "127.0.0.1"
    port: int = 8080
    question_directories: List[str] = field(default_factory=lambda: ["public", "dist/spa", "spa"])
    session_size: int = 20
    base_url: str = "http://127.0.0.1:8080"
    request_timeout: int = 10
    results_file: str = "./data/results.json"


@dataclass
class LoadResult:
    """Questions returned by the loader, with an error only when every source failed."""
    questions: List[Question] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.questions
