"""Parsing and validation of raw LLM output into flashcard records."""

import json
import re
import logging
from typing import Any, Optional

from .models import BlockResult, FlashcardRecord, ParseResult
from .exceptions import NoValidRecordsError

logger = logging.getLogger(__name__)

# Alternative key names models tend to use despite the prompt
ANSWER_KEYS = ("answer", "correct_answer", "correctAnswer")
ALTERNATIVES_KEYS = ("alternatives", "options", "distractors")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_DECODER = json.JSONDecoder()
_WHITESPACE = re.compile(r"\s+")


def _clean(value: Any) -> str:
    """Collapse whitespace in a text field.

    Numbers (years, quantities) are kept as text; booleans, objects and
    lists clean to ''.
    """
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def _first_present(item: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in item:
            return item[key]
    return None


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug(f"Candidate JSON did not parse: {e}")
        return None


def _find_array(text: str) -> Optional[list]:
    """First JSON array of objects embedded in `text`, or None.

    Each `[` is tried as the start of an array, so brackets in the prose
    around the array do not get in the way.
    """
    start = text.find("[")
    while start != -1:
        try:
            data, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list) and data and all(isinstance(v, dict) for v in data):
            return data
        start = text.find("[", start + 1)
    return None


def extract_blocks(content: str) -> list[Any]:
    """Find the JSON array in an LLM response and return its elements.

    Tolerates markdown code fences and prose around the array. Returns an
    empty list when nothing parsable is found.
    """
    candidates = [m.group(1) for m in _FENCE_PATTERN.finditer(content)]
    candidates.append(content)

    for candidate in candidates:
        data = _loads(candidate.strip())
        if data is None:
            data = _find_array(candidate)

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            # {"questions": [...]} wrapper, or a lone question object
            for value in data.values():
                if isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
                    return value
            if "question" in data:
                return [data]

    logger.warning(f"No JSON array found in content (length={len(content)})")
    logger.debug(f"Content preview: {content[:200]}...")
    return []


def validate_block(
    item: Any,
    index: int,
    expected_alternatives: int,
    deck_name: str,
) -> BlockResult:
    """Validate one candidate block.

    Args:
        item: Decoded JSON element
        index: Position of the block in the response (0-based)
        expected_alternatives: Exact number of distractors required
        deck_name: Deck the resulting record targets

    Returns:
        BlockResult, valid or invalid with a reason
    """
    if not isinstance(item, dict):
        return BlockResult.invalid(index, f"expected an object, got {type(item).__name__}")

    question = _clean(item.get("question"))
    if not question:
        return BlockResult.invalid(index, "missing question")

    answer = _clean(_first_present(item, ANSWER_KEYS))
    if not answer:
        return BlockResult.invalid(index, "missing answer")

    raw_alternatives = _first_present(item, ALTERNATIVES_KEYS)
    if raw_alternatives is None:
        raw_alternatives = []
    if not isinstance(raw_alternatives, list):
        return BlockResult.invalid(index, "alternatives is not a list")

    alternatives = [_clean(a) for a in raw_alternatives]
    if any(not a for a in alternatives):
        return BlockResult.invalid(index, "empty alternative")

    if len(alternatives) != expected_alternatives:
        return BlockResult.invalid(
            index,
            f"expected {expected_alternatives} alternatives, got {len(alternatives)}",
        )

    record = FlashcardRecord(
        question=question,
        correct_answer=answer,
        alternatives=tuple(alternatives),
        deck_name=deck_name,
    )
    return BlockResult.valid(index, record)


def parse_response(
    content: str,
    expected_count: int,
    expected_alternatives: int,
    deck_name: str = "Default",
) -> ParseResult:
    """Turn raw provider output into validated flashcard records.

    Invalid blocks are collected as failures and never abort the batch.
    The number of records may differ from `expected_count`; that is left
    to the caller to report.

    Raises:
        NoValidRecordsError: If no block survives validation
    """
    content = content or ""
    result = ParseResult(raw_response=content)

    for index, item in enumerate(extract_blocks(content)):
        block = validate_block(item, index, expected_alternatives, deck_name)
        if block.ok:
            result.records.append(block.record)
        else:
            logger.warning(f"Rejected block #{index + 1}: {block.reason}")
            result.failures.append(block)

    if not result.records:
        raise NoValidRecordsError(
            f"No valid flashcards in provider response "
            f"({len(result.failures)} block(s) rejected)",
            raw_response=content,
            failures=result.failures,
        )

    logger.debug(
        f"Parsed {len(result.records)} record(s) from {result.block_count} block(s), "
        f"{expected_count} requested"
    )
    return result
