"""
Question loader: fetches question sets over HTTP through an ordered chain of
sources and normalizes them into canonical questions.
"""
import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple
from urllib.parse import quote

import aiohttp

from .errors import MalformedPayloadError, SourceUnavailableError
from .models import LoadResult, Question, QuestionSetDescriptor
from .normalizer import normalize, reassign_ids


logger = logging.getLogger(__name__)

SETS_API_PATH = "/api/question-sets"
SETS_STATIC_PATH = "/question-sets.json"
QUESTIONS_API_PATH = "/api/questions"

Resolver = Tuple[str, Callable[[], Awaitable[Any]]]


class LoadLifecycleLogger:
    """Structured logging for source resolution events."""

    @staticmethod
    def log_attempt(source: str, target: str, attempt: int) -> None:
        """Log the start of a fetch from one source."""
        logger.debug(
            f"Load lifecycle: ATTEMPT - Source {source}, Attempt {attempt}, Target {target}",
            extra={
                'event_type': 'load_attempt',
                'source': source,
                'target': target,
                'attempt': attempt,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_fallthrough(source: str, target: str, reason: str) -> None:
        """Log a source failing and the chain moving on."""
        logger.warning(
            f"Load lifecycle: FALLTHROUGH - Source {source}, Target {target}: {reason}",
            extra={
                'event_type': 'load_fallthrough',
                'source': source,
                'target': target,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_resolved(source: str, target: str, started_at: float) -> None:
        """Log a successful fetch."""
        elapsed = time.time() - started_at
        logger.info(
            f"Load lifecycle: RESOLVED - Source {source}, Target {target}, Took {elapsed:.3f}s",
            extra={
                'event_type': 'load_resolved',
                'source': source,
                'target': target,
                'elapsed': elapsed,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_exhausted(target: str, attempts: int, last_error: str) -> None:
        """Log every source of a chain failing."""
        logger.error(
            f"Load lifecycle: EXHAUSTED - Target {target}, Attempts {attempts}, Last error: {last_error}",
            extra={
                'event_type': 'load_exhausted',
                'target': target,
                'attempts': attempts,
                'last_error': last_error,
                'timestamp': time.time()
            }
        )


def _is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    content_type = content_type.split(";", 1)[0].strip().lower()
    return content_type == "application/json" or content_type.endswith("+json")


def _static_path(source_id: str) -> str:
    name = source_id.lstrip("/")
    if not name.lower().endswith(".json"):
        name = f"{name}.json"
    return "/" + quote(name)


class QuestionLoader:
    """
    Loads question sets from a QuizCraft server.

    Use as an async context manager, or pass in an existing
    aiohttp.ClientSession that the caller keeps ownership of.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
        concurrent_aggregation: bool = True,
    ):
        """
        Initialize the loader.

        Args:
            base_url: Server root, e.g. http://127.0.0.1:8080
            session: Optional shared client session
            timeout: Total timeout per request in seconds
            concurrent_aggregation: Fetch sets in parallel when aggregating
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.concurrent_aggregation = concurrent_aggregation
        self._session = session
        self._owns_session = session is None
        self.last_error: Optional[str] = None

    async def __aenter__(self) -> "QuestionLoader":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the client session if this loader created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch_json(self, path: str, params: Optional[dict] = None) -> Any:
        """
        Fetch and parse a JSON resource.

        Args:
            path: Path relative to the base URL (already percent-encoded)
            params: Optional query parameters

        Returns:
            Parsed JSON payload

        Raises:
            SourceUnavailableError: On network errors, non-2xx status or a non-JSON content type
            MalformedPayloadError: If the body is not valid JSON
        """
        if self._session is None:
            raise RuntimeError("QuestionLoader used outside of its context")

        url = f"{self.base_url}{path}"
        try:
            async with self._session.get(url, params=params, timeout=self.timeout) as response:
                if not 200 <= response.status < 300:
                    raise SourceUnavailableError(url, f"HTTP {response.status}")
                if not _is_json_content_type(response.headers.get("Content-Type")):
                    raise SourceUnavailableError(url, f"unexpected content type {response.content_type}")
                body = await response.read()
        except aiohttp.ClientError as e:
            raise SourceUnavailableError(url, str(e) or type(e).__name__) from e
        except asyncio.TimeoutError as e:
            raise SourceUnavailableError(url, "timed out") from e

        try:
            return json.loads(body.decode(response.charset or "utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, LookupError) as e:
            raise MalformedPayloadError(f"Invalid JSON from {url}: {e}") from e

    async def resolve(self, target: str, resolvers: List[Resolver]) -> Any:
        """
        Try each resolver in order and return the first payload fetched.

        Args:
            target: Human-readable name of what is being resolved, for logging
            resolvers: (source name, coroutine factory) pairs

        Returns:
            Payload from the first resolver that succeeds

        Raises:
            SourceUnavailableError: If every resolver fails
        """
        last_error = "no sources configured"
        for attempt, (source, resolver) in enumerate(resolvers, start=1):
            started_at = time.time()
            LoadLifecycleLogger.log_attempt(source, target, attempt)
            try:
                payload = await resolver()
            except (SourceUnavailableError, MalformedPayloadError) as e:
                last_error = str(e)
                LoadLifecycleLogger.log_fallthrough(source, target, last_error)
                continue
            LoadLifecycleLogger.log_resolved(source, target, started_at)
            return payload

        LoadLifecycleLogger.log_exhausted(target, len(resolvers), last_error)
        raise SourceUnavailableError(target, last_error)

    def set_resolvers(self, source_id: str) -> List[Resolver]:
        """Ordered sources for one question set: the static file, then the API."""
        return [
            ("static", lambda: self.fetch_json(_static_path(source_id))),
            ("api", lambda: self.fetch_json(QUESTIONS_API_PATH, params={"file": source_id.lstrip("/")})),
        ]

    async def list_sets(self) -> List[QuestionSetDescriptor]:
        """
        List the question sets the server offers.

        Tries the API first and the static index second. When both fail the
        result is empty and last_error describes the failure.

        Returns:
            List of QuestionSetDescriptor objects in server order
        """
        self.last_error = None
        try:
            payload = await self.resolve("question sets", [
                ("api", lambda: self.fetch_json(SETS_API_PATH)),
                ("static", lambda: self.fetch_json(SETS_STATIC_PATH)),
            ])
        except SourceUnavailableError as e:
            self.last_error = e.reason
            return []

        if not isinstance(payload, list):
            logger.warning("Question set listing is not a list")
            return []

        sets = []
        for entry in payload:
            if isinstance(entry, dict) and entry.get("filename"):
                filename = str(entry["filename"])
                sets.append(QuestionSetDescriptor(filename=filename, title=str(entry.get("title") or filename)))
        return sets

    async def load_questions(self, source_id: Optional[str] = None) -> LoadResult:
        """
        Load questions for one set, or for every set when no id is given.

        Never raises for source or payload failures; an error string is set on
        the result only when no source could be reached at all.

        Args:
            source_id: File name of the set, with or without .json

        Returns:
            LoadResult with the normalized questions
        """
        try:
            if source_id:
                return await self._load_single(source_id)
            return await self._load_aggregate()
        except Exception as e:
            logger.error(f"Unexpected error loading questions for {source_id or 'all sets'}: {e}")
            return LoadResult(questions=[], error=f"Failed to load questions: {e}")

    async def _load_single(self, source_id: str) -> LoadResult:
        try:
            payload = await self.resolve(source_id, self.set_resolvers(source_id))
        except SourceUnavailableError as e:
            return LoadResult(questions=[], error=f"Failed to load questions: {e.reason}")

        questions = normalize(payload)
        logger.info(f"Loaded {len(questions)} questions from {source_id}")
        return LoadResult(questions=questions)

    async def _load_aggregate(self) -> LoadResult:
        sets = await self.list_sets()
        if not sets:
            if self.last_error:
                return LoadResult(questions=[], error=f"Failed to load question sets: {self.last_error}")
            return LoadResult(questions=[])

        if self.concurrent_aggregation:
            batches = await asyncio.gather(*(self._fetch_set_questions(s) for s in sets))
        else:
            batches = [await self._fetch_set_questions(s) for s in sets]

        combined: List[Question] = []
        for batch in batches:
            combined.extend(batch)
        reassign_ids(combined)

        logger.info(f"Aggregated {len(combined)} questions from {len(sets)} sets")
        return LoadResult(questions=combined)

    async def _fetch_set_questions(self, descriptor: QuestionSetDescriptor) -> List[Question]:
        try:
            payload = await self.resolve(descriptor.filename, self.set_resolvers(descriptor.filename))
        except SourceUnavailableError:
            logger.warning(f"Skipping unavailable set {descriptor.filename} during aggregation")
            return []
        return normalize(payload)
