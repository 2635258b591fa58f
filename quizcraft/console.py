"""
Terminal front-end: lists question sets, runs a quiz one question at a time
and prints the scored review.
"""
import asyncio
import logging
from typing import Callable, List, Optional

from .loader import QuestionLoader
from .models import Question, QuestionSetDescriptor, QuizSettings
from .quiz_controller import QuizController
from .result_store import ResultStore
from .scorer import review, score


logger = logging.getLogger(__name__)

COMMANDS_HELP = (
    "Commands: :next, :prev, :submit, :session (next session), :quit. "
    "Anything else is taken as your answer."
)

BOOLEAN_ANSWERS = {
    "t": "true", "true": "true", "y": "true", "yes": "true",
    "f": "false", "false": "false", "n": "false", "no": "false",
}


def format_question(question: Question, index: int, total: int, answer: Optional[str]) -> str:
    """Render one question with its options and the current answer."""
    lines = [f"Question {index + 1} of {total} [{question.type}]", question.question]
    if question.type == "multiple":
        for letter, text in question.options.items():
            marker = "*" if answer is not None and answer.upper() == letter.upper() else " "
            lines.append(f" {marker} {letter}. {text}")
    elif question.type == "boolean":
        lines.append("   true / false")
    if answer is not None:
        lines.append(f"Your answer: {answer}")
    return "\n".join(lines)


def parse_answer(question: Question, raw: str) -> Optional[str]:
    """
    Turn typed input into an answer value for the question type.

    Returns:
        The answer value, or None if the input is not valid for the question
    """
    text = raw.strip()
    if not text:
        return None
    if question.type == "multiple":
        letter = text.upper()
        if question.options and letter not in {key.upper() for key in question.options}:
            return None
        return letter
    if question.type == "boolean":
        return BOOLEAN_ANSWERS.get(text.lower())
    return text


def format_set_listing(sets: List[QuestionSetDescriptor], store: ResultStore) -> str:
    """List sets with the last recorded attempt of each."""
    if not sets:
        return "No question sets available."
    lines = []
    for number, descriptor in enumerate(sets, start=1):
        line = f"{number}. {descriptor.title} ({descriptor.filename})"
        latest = store.get_latest_result(descriptor.filename)
        if latest is not None:
            line += f" - last attempt {latest.score}/{latest.total} ({latest.percentage}%) on {latest.date[:10]}"
        lines.append(line)
    return "\n".join(lines)


class ConsoleQuiz:
    """Drives one QuizController from terminal input, prompting in a worker thread."""

    def __init__(
        self,
        settings: QuizSettings,
        store: ResultStore,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.settings = settings
        self.store = store
        self.input = input_func
        self.output = output

    async def list_sets(self) -> List[QuestionSetDescriptor]:
        async with QuestionLoader(self.settings.base_url, timeout=self.settings.request_timeout) as loader:
            sets = await loader.list_sets()
            if loader.last_error:
                self.output(f"Could not load question sets: {loader.last_error}")
        self.output(format_set_listing(sets, self.store))
        return sets

    async def run(self, session_filename: Optional[str] = None) -> Optional[int]:
        """
        Load and play a quiz.

        Args:
            session_filename: Set to play, or None to play every set in sessions

        Returns:
            Percentage scored, or None if the quiz was not submitted
        """
        controller = QuizController(session_filename, session_size=self.settings.session_size)
        async with QuestionLoader(self.settings.base_url, timeout=self.settings.request_timeout) as loader:
            self.output("Loading questions...")
            await controller.load(loader)

        if controller.error:
            self.output(controller.error)
        if not controller.questions:
            self.output("No questions available.")
            return None

        if session_filename:
            latest = self.store.get_latest_result(session_filename)
            if latest is not None:
                self.output(f"Last attempt: {latest.score}/{latest.total} ({latest.percentage}%)")

        self.output(COMMANDS_HELP)
        return await self._play(controller)

    async def _play(self, controller: QuizController) -> Optional[int]:
        while True:
            question = controller.current_question
            if controller.total_sessions > 1:
                self.output(f"Session {controller.session_index + 1} of {controller.total_sessions}")
            self.output(format_question(
                question, controller.current_index, len(controller.questions), controller.get_answer(question.id)
            ))

            try:
                raw = await asyncio.to_thread(self.input, "> ")
            except EOFError:
                raw = ":quit"
            command = raw.strip().lower()

            if command == ":quit":
                self.output("Quiz abandoned.")
                return None
            if command == ":next":
                if not controller.next_question():
                    self.output("This is the last question. Use :submit to finish.")
            elif command == ":prev":
                if not controller.previous_question():
                    self.output("This is the first question.")
            elif command == ":session":
                if controller.has_next_session:
                    controller.next_session()
                else:
                    self.output("There is no further session.")
            elif command == ":submit":
                if not controller.all_answered:
                    self.output(f"Submitting with {len(controller.questions) - controller.answered_count} unanswered.")
                return self._finish(controller)
            else:
                answer = parse_answer(question, raw)
                if answer is None:
                    self.output("That is not a valid answer for this question.")
                    continue
                controller.set_answer(question.id, answer)
                if controller.is_last and controller.all_answered:
                    self.output("All questions answered. Use :submit to finish.")
                controller.next_question()

    def _finish(self, controller: QuizController) -> int:
        snapshot = controller.submit()
        outcome = score(snapshot.questions, snapshot.answers)

        self.output(f"Test complete! {outcome.percentage}%")
        self.output(f"You scored {outcome.correct_count} out of {outcome.total}")
        for item in review(snapshot.questions, snapshot.answers):
            mark = "✓" if item.is_correct else "✗"
            self.output(f"{mark} {item.question}")
            self.output(f"   Your answer: {item.user_answer if item.user_answer is not None else '-'}")
            if not item.is_correct:
                self.output(f"   Correct answer: {item.correct_answer if item.correct_answer is not None else '-'}")
            if item.explanation:
                self.output(f"   Why: {item.explanation}")

        if snapshot.session_filename:
            self.store.save_score(snapshot.session_filename, outcome, snapshot.answers)
        return outcome.percentage
