"""
Question set registry: discovery and lookup of JSON question files on disk.
"""
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import MalformedPayloadError, QuestionSetNotFoundError
from .models import QuestionSetDescriptor


DEFAULT_QUESTION_DIRECTORIES = ("public", "dist/spa", "spa")

# JSON files that live next to question sets but are not question sets
EXCLUDED_FILES = frozenset({
    "package.json",
    "tsconfig.json",
    "components.json",
    "question-sets.json",
})

_NUMBER_RE = re.compile(r"(\d+)")
_WHITESPACE_RE = re.compile(r"\s+")


def natural_sort_key(name: str) -> List[Any]:
    """
    Sort key that orders embedded numbers numerically and ignores case.

    "Part 2.json" sorts before "Part 10.json".
    """
    parts = _NUMBER_RE.split(name.casefold())
    return [(0, int(part)) if part.isdigit() else (1, part) for part in parts]


def normalize_filename(name: str) -> str:
    """Case-fold and collapse whitespace so 'Part  1.JSON' matches 'part 1.json'."""
    return _WHITESPACE_RE.sub(" ", name.strip()).casefold()


def safe_basename(requested: str) -> str:
    """Strip directory components from a requested file name and ensure a .json suffix."""
    name = os.path.basename(requested.replace("\\", "/")).strip()
    if not name:
        return ""
    return name if name.lower().endswith(".json") else f"{name}.json"


class QuestionSetRegistry:
    """Discovers question sets in the first existing candidate directory."""

    def __init__(self, candidate_directories: Optional[Sequence[Union[str, Path]]] = None):
        """
        Initialize the registry.

        Args:
            candidate_directories: Ordered directories to search; the first one
                that exists is used. Defaults to public, dist/spa and spa.
        """
        if candidate_directories is None:
            candidate_directories = DEFAULT_QUESTION_DIRECTORIES
        self.candidate_directories = [Path(directory) for directory in candidate_directories]
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []

    def find_directory(self) -> Optional[Path]:
        """
        Find the active question directory.

        Returns:
            First candidate directory that exists, or None if none do
        """
        for directory in self.candidate_directories:
            if directory.is_dir():
                return directory
        return None

    def list_sets(self) -> List[QuestionSetDescriptor]:
        """
        List every readable question set in natural filename order.

        Files that fail to parse are logged and left out. A missing directory
        yields an empty list.

        Returns:
            List of QuestionSetDescriptor objects
        """
        self.load_errors.clear()

        directory = self.find_directory()
        if directory is None:
            self.logger.warning(
                f"No question directory found among: {', '.join(str(d) for d in self.candidate_directories)}"
            )
            return []

        try:
            filenames = sorted(self._scan_json_files(directory), key=natural_sort_key)
        except OSError as e:
            self.logger.error(f"Failed to scan question directory {directory}: {e}")
            self.load_errors.append(f"{directory}: {e}")
            return []

        sets = []
        for filename in filenames:
            try:
                payload = self.read_set(directory / filename)
            except (MalformedPayloadError, OSError) as e:
                self.logger.error(f"Skipping question set {filename}: {e}")
                self.load_errors.append(f"{filename}: {e}")
                continue
            sets.append(QuestionSetDescriptor(filename=filename, title=self._title_for(filename, payload)))

        self.logger.info(f"Discovered {len(sets)} question sets in {directory}")
        return sets

    def resolve_file(self, requested: str) -> Optional[Path]:
        """
        Resolve a requested file name to a question file on disk.

        The name is reduced to its basename and given a .json suffix. An exact
        match wins; otherwise the directory is searched for a name that matches
        case-insensitively with whitespace collapsed.

        Args:
            requested: File name as supplied by a client

        Returns:
            Path to the matching file, or None if nothing matches
        """
        filename = safe_basename(requested)
        if not filename:
            return None

        directory = self.find_directory()
        if directory is None:
            return None

        exact = directory / filename
        if exact.is_file():
            return exact

        wanted = normalize_filename(filename)
        try:
            for candidate in sorted(self._scan_json_files(directory), key=natural_sort_key):
                if normalize_filename(candidate) == wanted:
                    self.logger.info(f"Resolved '{requested}' to '{candidate}' by normalized name")
                    return directory / candidate
        except OSError as e:
            self.logger.error(f"Failed to scan question directory {directory}: {e}")
            return None

        self.logger.warning(f"Question set not found: {directory / filename}")
        return None

    def load_set(self, requested: str) -> Any:
        """
        Resolve and read a question set.

        Raises:
            QuestionSetNotFoundError: If no file matches
            MalformedPayloadError: If the file is not valid JSON
        """
        path = self.resolve_file(requested)
        if path is None:
            raise QuestionSetNotFoundError(f"Question set not found: {requested}")
        return self.read_set(path)

    def read_set(self, path: Path) -> Any:
        """
        Read and parse one question file.

        Raises:
            MalformedPayloadError: If the file is not valid UTF-8 JSON
            OSError: If the file cannot be read
        """
        with open(path, 'r', encoding='utf-8') as f:
            try:
                return json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise MalformedPayloadError(f"Invalid JSON in {path.name}: {e}") from e

    def get_load_errors(self) -> List[str]:
        """Errors encountered during the last list_sets call."""
        return self.load_errors.copy()

    def get_registry_summary(self) -> Dict[str, Any]:
        """
        Summarize the registry state for diagnostics.

        Returns:
            Dictionary with the active directory and set statistics
        """
        sets = self.list_sets()
        directory = self.find_directory()
        return {
            'directory': str(directory) if directory else None,
            'candidate_directories': [str(d) for d in self.candidate_directories],
            'total_sets': len(sets),
            'has_errors': bool(self.load_errors),
            'errors': self.get_load_errors(),
            'available_sets': [s.filename for s in sets],
        }

    def _scan_json_files(self, directory: Path) -> List[str]:
        return [
            entry.name
            for entry in directory.iterdir()
            if entry.is_file() and entry.suffix.lower() == ".json" and entry.name not in EXCLUDED_FILES
        ]

    @staticmethod
    def _title_for(filename: str, payload: Any) -> str:
        if isinstance(payload, dict) and payload.get("title"):
            return str(payload["title"])
        return filename[:-len(".json")] if filename.lower().endswith(".json") else filename
