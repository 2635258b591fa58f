"""
Quiz session controller for QuizCraft.
Tracks the active question, the answer map and session chunking for one quiz.
"""
import logging
import math
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import LoadResult, Question, QuizSession, SubmissionSnapshot


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    LOADING = "loading"
    READY = "ready"
    SUBMITTED = "submitted"


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class InvalidSessionStateError(QuizControllerError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


class QuizController:
    """
    State machine for a single quiz: LOADING -> READY -> SUBMITTED.

    When no question set file name is given the loaded questions come from
    every set at once and are split into sessions of ``session_size``
    questions; only one session is active at a time. Moving to the next
    session starts it from its first question with no answers.
    """

    DEFAULT_SESSION_SIZE = 20

    def __init__(self, session_filename: Optional[str] = None, session_size: int = DEFAULT_SESSION_SIZE):
        """
        Initialize the quiz controller.

        Args:
            session_filename: File name of the chosen set, or None for all sets
            session_size: Questions per session when all sets are aggregated
        """
        if session_size < 1:
            raise ValueError("session_size must be at least 1")

        self.logger = logging.getLogger(__name__)
        self.session_filename = session_filename
        self.session_size = session_size

        self.state = SessionState.LOADING
        self.error: Optional[str] = None
        self.session_index = 0
        self._all_questions: List[Question] = []
        self._session = QuizSession(questions=[])
        self._alive = True

    # Loading

    async def load(self, loader) -> bool:
        """
        Load questions through a loader and enter the READY state.

        The result is dropped if teardown() was called while the load was in
        flight.

        Args:
            loader: Object with an async load_questions(source_id) returning LoadResult

        Returns:
            True if the result was applied, False if it was discarded
        """
        result: LoadResult = await loader.load_questions(self.session_filename)
        if not self._alive:
            self.logger.info(f"Discarding load result for {self._label()}: controller torn down")
            return False
        self.error = result.error
        self.start(result.questions)
        return True

    def start(self, questions: List[Question]) -> None:
        """
        Enter the READY state with the given questions.

        Raises:
            InvalidSessionStateError: If the controller is not loading
        """
        self._require_state(SessionState.LOADING, "start")
        self._all_questions = list(questions)
        self.session_index = 0
        self._activate_chunk()
        self.state = SessionState.READY
        self.logger.info(
            f"Quiz ready for {self._label()}: questions={len(self._all_questions)}, "
            f"sessions={self.total_sessions}"
        )

    def teardown(self) -> None:
        """Mark the consumer as gone so that in-flight loads are discarded."""
        self._alive = False

    @property
    def is_alive(self) -> bool:
        return self._alive

    # Session chunking

    @property
    def is_chunked(self) -> bool:
        return self.session_filename is None

    @property
    def total_sessions(self) -> int:
        if not self.is_chunked or not self._all_questions:
            return 1
        return math.ceil(len(self._all_questions) / self.session_size)

    @property
    def has_next_session(self) -> bool:
        return self.is_chunked and self.session_index < self.total_sessions - 1

    def next_session(self) -> None:
        """
        Switch to the next chunk, starting at its first question with no answers.

        Raises:
            InvalidSessionStateError: If not READY or there is no next session
        """
        self._require_state(SessionState.READY, "next_session")
        if not self.has_next_session:
            raise InvalidSessionStateError("No further session available")
        self.session_index += 1
        self._activate_chunk()
        self.logger.info(f"Advanced to session {self.session_index + 1} of {self.total_sessions}")

    # Navigation and answers

    @property
    def questions(self) -> List[Question]:
        """Questions of the active session."""
        return self._session.questions

    @property
    def all_questions(self) -> List[Question]:
        return list(self._all_questions)

    @property
    def current_index(self) -> int:
        return self._session.current_index

    @property
    def answers(self) -> Dict[int, Any]:
        return dict(self._session.answers)

    @property
    def current_question(self) -> Optional[Question]:
        if not self._session.questions:
            return None
        return self._session.questions[self._session.current_index]

    @property
    def is_first(self) -> bool:
        return self._session.current_index == 0

    @property
    def is_last(self) -> bool:
        return self._session.current_index >= len(self._session.questions) - 1

    def advance(self, step: int = 1) -> bool:
        """
        Move the current index by ``step``; moves past either end are ignored.

        Args:
            step: +1 for next, -1 for previous

        Returns:
            True if the index moved, False if the move was out of range
        """
        self._require_state(SessionState.READY, "advance")
        target = self._session.current_index + step
        if not 0 <= target < len(self._session.questions):
            return False
        self._session.current_index = target
        self.logger.debug(f"Moved to question {target + 1} of {len(self._session.questions)}")
        return True

    def next_question(self) -> bool:
        return self.advance(1)

    def previous_question(self) -> bool:
        return self.advance(-1)

    def set_answer(self, question_id: int, value: Any) -> None:
        """
        Record or replace the answer to a question of the active session.

        Raises:
            InvalidSessionStateError: If not READY
            ValueError: If the question is not part of the active session
        """
        self._require_state(SessionState.READY, "set_answer")
        if not any(q.id == question_id for q in self._session.questions):
            raise ValueError(f"Question {question_id} is not in the active session")
        self._session.answers[question_id] = value

    def get_answer(self, question_id: int) -> Optional[Any]:
        return self._session.answers.get(question_id)

    @property
    def answered_count(self) -> int:
        return len(self._session.answers)

    @property
    def all_answered(self) -> bool:
        return all(q.id in self._session.answers for q in self._session.questions)

    @property
    def progress(self) -> float:
        """Percentage of the active session answered."""
        if not self._session.questions:
            return 0.0
        return self.answered_count / len(self._session.questions) * 100

    # Submit

    def submit(self) -> SubmissionSnapshot:
        """
        Finish the session. Allowed at any index and with unanswered questions.

        Returns:
            Snapshot of the active questions and answers for scoring

        Raises:
            InvalidSessionStateError: If not READY
        """
        self._require_state(SessionState.READY, "submit")
        snapshot = SubmissionSnapshot(
            session_filename=self.session_filename,
            session_index=self.session_index,
            total_sessions=self.total_sessions,
            questions=list(self._session.questions),
            answers=dict(self._session.answers),
        )
        self.state = SessionState.SUBMITTED
        self.logger.info(
            f"Submitted {self._label()}: answered {len(snapshot.answers)} of {len(snapshot.questions)}"
        )
        return snapshot

    def get_session_progress(self) -> Dict[str, Any]:
        """
        Get progress information for the quiz.

        Returns:
            Dictionary with position, answer and session counters
        """
        return {
            'session_filename': self.session_filename,
            'state': self.state.value,
            'current_question': self._session.current_index + 1 if self._session.questions else 0,
            'total_questions': len(self._session.questions),
            'answered': self.answered_count,
            'all_answered': self.all_answered,
            'session_index': self.session_index,
            'total_sessions': self.total_sessions,
            'has_next_session': self.has_next_session,
        }

    def _activate_chunk(self) -> None:
        if self.is_chunked:
            start = self.session_index * self.session_size
            chunk = self._all_questions[start:start + self.session_size]
        else:
            chunk = list(self._all_questions)
        self._session = QuizSession(questions=chunk)

    def _require_state(self, expected: SessionState, operation: str) -> None:
        if self.state is not expected:
            raise InvalidSessionStateError(
                f"Cannot {operation} while {self.state.value}; expected {expected.value}"
            )

    def _label(self) -> str:
        return self.session_filename or "all sets"
