"""
Normalization of raw question-set payloads into canonical Question records.

Question files come from independently authored sources and disagree on
shape: options may be a plain list (lettered A, B, C... here) or an already
lettered mapping, ``id`` and ``type`` may be missing, and the whole payload
may be a bare list or an object with a ``questions`` list. Everything below
turns those variants into one shape and never raises on bad input.
"""
import logging
import string
from typing import Any, Dict, List, Optional

from .models import DEFAULT_QUESTION_TYPE, QUESTION_TYPES, Question


logger = logging.getLogger(__name__)

OPTION_LETTERS = string.ascii_uppercase


def normalize(raw: Any) -> List[Question]:
    """
    Convert a raw payload into canonical questions.

    Args:
        raw: Parsed JSON of any shape

    Returns:
        List of Question objects, empty when the payload has no usable questions
    """
    if _is_pre_normalized(raw):
        logger.debug(f"Payload is pre-normalized ({len(raw)} questions)")
        return normalize_records(raw)

    if isinstance(raw, dict) and isinstance(raw.get("questions"), list):
        return normalize_records(raw["questions"])

    if isinstance(raw, list):
        return normalize_records(raw)

    logger.warning(f"Unrecognized question payload of type {type(raw).__name__}")
    return []


def normalize_records(records: List[Any]) -> List[Question]:
    """
    Normalize a list of raw question records.

    Items that are not JSON objects are skipped; positions still count so the
    fallback id of every later item matches its place in the file.
    """
    questions = []
    for position, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            logger.warning(f"Skipping question {position}: expected an object, got {type(record).__name__}")
            continue
        questions.append(normalize_record(record, position))
    return questions


def normalize_record(record: Dict[str, Any], position: int) -> Question:
    """
    Normalize a single raw question record.

    Args:
        record: Raw question object
        position: 1-based position in its source list, used when ``id`` is missing

    Returns:
        Canonical Question
    """
    return Question(
        id=_coerce_id(record.get("id"), position),
        type=_coerce_type(record.get("type")),
        question=_coerce_text(record.get("question")) or "",
        options=letter_options(record.get("options")),
        answer=_coerce_text(record.get("answer")),
        explanation=_coerce_text(record.get("explanation")),
    )


def letter_options(options: Any) -> Dict[str, str]:
    """
    Convert options into a letter-keyed mapping.

    A list becomes {"A": first, "B": second, ...}; a mapping is kept with its
    keys and values as strings; anything else yields an empty mapping.
    """
    if isinstance(options, list):
        lettered = {}
        for index, option in enumerate(options[:len(OPTION_LETTERS)]):
            lettered[OPTION_LETTERS[index]] = "" if option is None else str(option)
        if len(options) > len(OPTION_LETTERS):
            logger.warning(f"Dropping {len(options) - len(OPTION_LETTERS)} options beyond 'Z'")
        return lettered

    if isinstance(options, dict):
        return {str(key): "" if value is None else str(value) for key, value in options.items()}

    return {}


def reassign_ids(questions: List[Question], start: int = 1) -> List[Question]:
    """Renumber questions sequentially in place and return them."""
    for offset, question in enumerate(questions):
        question.id = start + offset
    return questions


def _is_pre_normalized(raw: Any) -> bool:
    if not isinstance(raw, list) or not raw:
        return False
    first = raw[0]
    return isinstance(first, dict) and bool(first.get("question")) and bool(first.get("type"))


def _coerce_id(value: Any, position: int) -> int:
    if value is None or isinstance(value, bool):
        return position
    try:
        coerced = int(value)
    except (TypeError, ValueError):
        return position
    return coerced if coerced >= 1 else position


def _coerce_type(value: Any) -> str:
    if value is None:
        return DEFAULT_QUESTION_TYPE
    normalized = str(value).strip().lower()
    if normalized not in QUESTION_TYPES:
        logger.debug(f"Unknown question type '{value}', using '{DEFAULT_QUESTION_TYPE}'")
        return DEFAULT_QUESTION_TYPE
    return normalized


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
