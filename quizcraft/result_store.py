"""
Append-only store of past quiz attempts on top of a key-value backend.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import StorageError
from .models import ScoreResult, StoredResult


STORAGE_KEY = "quizcraft_results"


class MemoryBackend:
    """Key-value backend kept in process memory."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileBackend:
    """Key-value backend persisted as a single JSON object file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Raises:
            StorageError: If the file exists but cannot be read or parsed
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not hold a JSON object")
        return data.get(key)

    def set(self, key: str, value: str) -> None:
        """
        Write a value, keeping the other keys in the file.

        Raises:
            StorageError: If the file cannot be written
        """
        try:
            data = {}
            if self.path.exists():
                with open(self.path, 'r', encoding='utf-8') as f:
                    existing = json.load(f)
                if isinstance(existing, dict):
                    data = existing
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_date(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ResultStore:
    """
    Log of quiz attempts keyed by question set file name.

    Results are appended and never rewritten. Storage failures are logged
    and swallowed: a failed save is dropped, a failed read looks empty.
    """

    def __init__(self, backend=None, clock: Callable[[], datetime] = _utc_now):
        """
        Initialize the store.

        Args:
            backend: Object with get(key) and set(key, value); defaults to memory
            clock: Source of the timestamp stamped on each saved result
        """
        self.backend = backend if backend is not None else MemoryBackend()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def save_result(
        self,
        session_filename: str,
        score: int,
        total: int,
        percentage: int,
        answers: Dict[Any, Any],
    ) -> Optional[StoredResult]:
        """
        Append a result stamped with the current time.

        Returns:
            The stored result, or None if it could not be saved
        """
        result = StoredResult(
            session_filename=session_filename,
            score=score,
            total=total,
            percentage=percentage,
            date=self.clock().isoformat(),
            answers={str(key): value for key, value in answers.items()},
        )
        try:
            results = self._read_raw()
            results.append(result.to_dict())
            self.backend.set(STORAGE_KEY, json.dumps(results, ensure_ascii=False))
        except (StorageError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to save result for {session_filename}: {e}")
            return None

        self.logger.info(f"Saved result for {session_filename}: {score}/{total} ({percentage}%)")
        return result

    def save_score(self, session_filename: str, outcome: ScoreResult, answers: Dict[Any, Any]) -> Optional[StoredResult]:
        """Append a result built from a ScoreResult."""
        return self.save_result(
            session_filename,
            score=outcome.correct_count,
            total=outcome.total,
            percentage=outcome.percentage,
            answers=answers,
        )

    def get_all_results(self) -> List[StoredResult]:
        """All stored results in insertion order; empty on storage failure."""
        try:
            raw_results = self._read_raw()
        except StorageError as e:
            self.logger.error(f"Failed to load results: {e}")
            return []

        results = []
        for entry in raw_results:
            try:
                results.append(StoredResult.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"Skipping corrupt stored result: {e}")
        return results

    def get_latest_result(self, session_filename: str) -> Optional[StoredResult]:
        """
        Get the most recent result for a question set.

        Args:
            session_filename: File name of the question set

        Returns:
            The stored result with the latest date, or None
        """
        matching = [r for r in self.get_all_results() if r.session_filename == session_filename]
        if not matching:
            return None
        return max(matching, key=lambda r: _parse_date(r.date))

    def _read_raw(self) -> List[Dict[str, Any]]:
        stored = self.backend.get(STORAGE_KEY)
        if not stored:
            return []
        try:
            data = json.loads(stored)
        except (TypeError, json.JSONDecodeError) as e:
            raise StorageError(f"Stored results are not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise StorageError("Stored results are not a JSON array")
        return [entry for entry in data if isinstance(entry, dict)]
