"""
Unit tests for QuizController session state management.
"""
import asyncio
import logging
import unittest

from quizcraft.models import LoadResult
from quizcraft.quiz_controller import InvalidSessionStateError, QuizController, SessionState
from tests.test_fixtures import TestFixtures


class StubLoader:
    """Loader returning a fixed result, optionally after a gate opens."""

    def __init__(self, result: LoadResult, gate: asyncio.Event = None):
        self.result = result
        self.gate = gate
        self.requested = []

    async def load_questions(self, source_id=None):
        self.requested.append(source_id)
        if self.gate is not None:
            await self.gate.wait()
        return self.result


class TestQuizControllerSessionState(unittest.TestCase):
    """Test cases for navigation, answers and submit on a single set."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.questions = TestFixtures.create_sample_questions(3)
        self.controller = QuizController("Part 1.json")
        self.controller.start(self.questions)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_initial_state(self):
        """Test the controller state right after loading."""
        controller = QuizController("Part 1.json")
        self.assertEqual(controller.state, SessionState.LOADING)

        self.assertEqual(self.controller.state, SessionState.READY)
        self.assertEqual(self.controller.current_index, 0)
        self.assertEqual(self.controller.answers, {})
        self.assertEqual(self.controller.current_question.id, 1)

    def test_advance_within_bounds(self):
        """Test forward and backward moves."""
        self.assertTrue(self.controller.advance(1))
        self.assertTrue(self.controller.advance(1))
        self.assertEqual(self.controller.current_index, 2)
        self.assertTrue(self.controller.is_last)

        self.assertTrue(self.controller.advance(-1))
        self.assertEqual(self.controller.current_index, 1)

    def test_advance_out_of_range_is_noop(self):
        """Test that moves past either end are clamped, not wrapped."""
        self.assertFalse(self.controller.previous_question())
        self.assertEqual(self.controller.current_index, 0)

        self.controller.advance(1)
        self.controller.advance(1)
        self.assertFalse(self.controller.next_question())
        self.assertEqual(self.controller.current_index, 2)

    def test_set_answer_upserts_without_moving(self):
        """Test that answering records the value and keeps the index."""
        self.controller.set_answer(1, "A")
        self.controller.set_answer(1, "C")

        self.assertEqual(self.controller.answers, {1: "C"})
        self.assertEqual(self.controller.current_index, 0)
        self.assertEqual(self.controller.answered_count, 1)
        self.assertAlmostEqual(self.controller.progress, 100 / 3)

    def test_set_answer_unknown_question(self):
        """Test that answers for questions outside the session are rejected."""
        with self.assertRaises(ValueError):
            self.controller.set_answer(99, "A")

    def test_all_answered(self):
        """Test the all-answered flag."""
        self.assertFalse(self.controller.all_answered)
        for q in self.questions:
            self.controller.set_answer(q.id, "B")
        self.assertTrue(self.controller.all_answered)

    def test_submit_at_any_index(self):
        """Test that submit is allowed mid-quiz with unanswered questions."""
        self.controller.set_answer(1, "B")

        snapshot = self.controller.submit()

        self.assertEqual(self.controller.state, SessionState.SUBMITTED)
        self.assertEqual(snapshot.session_filename, "Part 1.json")
        self.assertEqual(len(snapshot.questions), 3)
        self.assertEqual(snapshot.answers, {1: "B"})
        self.assertEqual(snapshot.total_sessions, 1)

    def test_submitted_is_terminal(self):
        """Test that every mutation fails after submit."""
        self.controller.submit()

        with self.assertRaises(InvalidSessionStateError):
            self.controller.advance(1)
        with self.assertRaises(InvalidSessionStateError):
            self.controller.set_answer(1, "A")
        with self.assertRaises(InvalidSessionStateError):
            self.controller.submit()

    def test_operations_require_ready(self):
        """Test that a loading controller rejects navigation."""
        controller = QuizController("x.json")

        with self.assertRaises(InvalidSessionStateError):
            controller.advance(1)
        with self.assertRaises(InvalidSessionStateError):
            controller.submit()

    def test_single_set_is_not_chunked(self):
        """Test that a named set is one session regardless of size."""
        controller = QuizController("big.json")
        controller.start(TestFixtures.create_sample_questions(45))

        self.assertEqual(len(controller.questions), 45)
        self.assertEqual(controller.total_sessions, 1)
        self.assertFalse(controller.has_next_session)

    def test_empty_load_is_ready(self):
        """Test that zero questions still reach READY."""
        controller = QuizController("empty.json")
        controller.start([])

        self.assertEqual(controller.state, SessionState.READY)
        self.assertIsNone(controller.current_question)
        self.assertFalse(controller.advance(1))
        self.assertEqual(controller.progress, 0.0)

    def test_session_progress(self):
        """Test the progress dictionary."""
        self.controller.set_answer(2, "A")
        self.controller.advance(1)

        progress = self.controller.get_session_progress()

        self.assertEqual(progress['current_question'], 2)
        self.assertEqual(progress['total_questions'], 3)
        self.assertEqual(progress['answered'], 1)
        self.assertEqual(progress['state'], "ready")


class TestQuizControllerChunking(unittest.TestCase):
    """Test cases for splitting aggregated questions into sessions."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.controller = QuizController(None)
        self.controller.start(TestFixtures.create_sample_questions(45))

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_chunk_sizes(self):
        """Test that 45 questions split into sessions of 20, 20 and 5."""
        sizes = [len(self.controller.questions)]
        while self.controller.has_next_session:
            self.controller.next_session()
            sizes.append(len(self.controller.questions))

        self.assertEqual(sizes, [20, 20, 5])
        self.assertEqual(self.controller.total_sessions, 3)

    def test_chunks_follow_question_order(self):
        """Test that each session holds the next run of ids."""
        self.assertEqual(self.controller.questions[0].id, 1)
        self.controller.next_session()
        self.assertEqual(self.controller.questions[0].id, 21)
        self.assertEqual(self.controller.questions[-1].id, 40)

    def test_next_session_clears_answers_and_index(self):
        """Test that answers from a finished chunk do not carry over."""
        for q in self.controller.questions:
            self.controller.set_answer(q.id, "B")
        while self.controller.advance(1):
            pass
        self.assertTrue(self.controller.is_last)

        self.controller.next_session()

        self.assertEqual(self.controller.session_index, 1)
        self.assertEqual(self.controller.current_index, 0)
        self.assertEqual(self.controller.answers, {})

    def test_no_session_after_last(self):
        """Test that the last chunk has no next session."""
        self.controller.next_session()
        self.controller.next_session()

        self.assertFalse(self.controller.has_next_session)
        with self.assertRaises(InvalidSessionStateError):
            self.controller.next_session()

    def test_submit_scores_active_chunk_only(self):
        """Test that the snapshot holds only the active session."""
        self.controller.next_session()
        self.controller.next_session()

        snapshot = self.controller.submit()

        self.assertEqual(len(snapshot.questions), 5)
        self.assertEqual(snapshot.session_index, 2)
        self.assertIsNone(snapshot.session_filename)

    def test_custom_session_size(self):
        """Test a non-default chunk size."""
        controller = QuizController(None, session_size=10)
        controller.start(TestFixtures.create_sample_questions(25))

        self.assertEqual(controller.total_sessions, 3)

    def test_invalid_session_size(self):
        """Test that a zero chunk size is rejected."""
        with self.assertRaises(ValueError):
            QuizController(None, session_size=0)


class TestQuizControllerLoading(unittest.IsolatedAsyncioTestCase):
    """Test cases for loading through a loader."""

    def setUp(self):
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    async def test_load_applies_result(self):
        """Test that a completed load enters READY with the questions."""
        loader = StubLoader(LoadResult(questions=TestFixtures.create_sample_questions(2)))
        controller = QuizController("Part 1.json")

        applied = await controller.load(loader)

        self.assertTrue(applied)
        self.assertEqual(loader.requested, ["Part 1.json"])
        self.assertEqual(controller.state, SessionState.READY)
        self.assertEqual(len(controller.questions), 2)
        self.assertIsNone(controller.error)

    async def test_load_failure_is_ready_and_empty(self):
        """Test that a failed load is READY with no questions and an error."""
        loader = StubLoader(LoadResult(questions=[], error="Failed to load questions: HTTP 404"))
        controller = QuizController("missing.json")

        await controller.load(loader)

        self.assertEqual(controller.state, SessionState.READY)
        self.assertEqual(controller.questions, [])
        self.assertEqual(controller.error, "Failed to load questions: HTTP 404")

    async def test_teardown_discards_inflight_result(self):
        """Test that a result arriving after teardown is not applied."""
        gate = asyncio.Event()
        loader = StubLoader(LoadResult(questions=TestFixtures.create_sample_questions(2)), gate)
        controller = QuizController("Part 1.json")

        task = asyncio.create_task(controller.load(loader))
        await asyncio.sleep(0)
        controller.teardown()
        gate.set()
        applied = await task

        self.assertFalse(applied)
        self.assertFalse(controller.is_alive)
        self.assertEqual(controller.state, SessionState.LOADING)
        self.assertEqual(controller.questions, [])


if __name__ == '__main__':
    unittest.main()
