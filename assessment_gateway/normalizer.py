"""Response normalization: turn raw model text into parsed JSON.

Models wrap JSON in markdown fences, add prose around it, and, when they hit
the token limit, stop in the middle of a value. ``parse`` handles the first
two cases. ``parse_with_repair`` additionally recovers truncated replies for
callers that know the shape they expect, trading the incomplete trailing item
for a usable result.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .metrics import GatewayMetrics, get_metrics
from .text_utils import strip_markdown_code_blocks

logger = logging.getLogger(__name__)

ParsedContent = Union[Dict[str, Any], List[Any]]

TRUNCATION_EXPLANATION = "response was truncated"
TRUNCATION_FLAG = "_truncated"

_JSON_SPAN = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")
_CLOSERS = {"{": "}", "[": "]"}
_PREVIEW_CHARS = 200


class ResponseShape(str, Enum):
    """Expected top-level layout of a structured reply."""

    ITEM_ARRAY = "item_array"  # [{...}, {...}]
    OBJECT_WITH_ITEMS = "object_with_items"  # {"passage": "...", "questions": [...]}

    @property
    def opener(self) -> str:
        return "[" if self is ResponseShape.ITEM_ARRAY else "{"

    @property
    def item_depth(self) -> int:
        """Bracket depth of the list that holds the items."""
        return 1 if self is ResponseShape.ITEM_ARRAY else 2


class MalformedResponseError(ValueError):
    """No valid structure could be recovered from a model reply."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)


@dataclass
class _ScanState:
    stack: List[str] = field(default_factory=list)
    in_string: bool = False
    pending_escape: bool = False
    item_ends: List[Tuple[int, List[str]]] = field(default_factory=list)
    item_list_start: Optional[int] = None


def extract_json_candidate(text: str) -> str:
    """Strip fences and isolate the first JSON object/array substring.

    The match is greedy: from the first ``{``/``[`` to the last ``}``/``]``,
    which tolerates prose before and after the JSON.
    """
    cleaned = strip_markdown_code_blocks(text)
    match = _JSON_SPAN.search(cleaned)
    return match.group(0) if match else cleaned


def _scan(text: str, item_depth: int) -> _ScanState:
    """Track open brackets and complete-item boundaries outside strings."""
    state = _ScanState()
    for index, char in enumerate(text):
        if state.in_string:
            if state.pending_escape:
                state.pending_escape = False
            elif char == "\\":
                state.pending_escape = True
            elif char == '"':
                state.in_string = False
            continue

        if char == '"':
            state.in_string = True
        elif char in _CLOSERS:
            state.stack.append(char)
            if char == "[" and len(state.stack) == item_depth:
                state.item_list_start = index
        elif char in ("}", "]"):
            if not state.stack or _CLOSERS[state.stack[-1]] != char:
                break
            state.stack.pop()
            if (
                char == "}"
                and len(state.stack) == item_depth
                and state.stack[-1] == "["
            ):
                state.item_ends.append((index + 1, list(state.stack)))
    return state


def _closing_sequence(stack: List[str]) -> str:
    return "".join(_CLOSERS[opener] for opener in reversed(stack))


def _completions(text: str, state: _ScanState) -> Iterator[str]:
    """Candidate endings for a reply that stops mid-structure."""
    if state.in_string:
        base = text[:-1] if state.pending_escape else text
        yield base + '"'  # cut inside a value
        yield base + '": null'  # cut inside a key
        return

    base = text.rstrip()
    if base.endswith(","):
        yield base[:-1]
    elif base.endswith(":"):
        yield base + " null"
    else:
        yield base


def _cut_inside_item(
    text: str, state: _ScanState, shape: ResponseShape, items_key: str
) -> bool:
    """Whether the reply stops inside an element of the item list itself.

    A cut inside an element of any other list (a glossary next to the
    questions, say) leaves the item list complete.
    """
    depth = shape.item_depth
    if len(state.stack) <= depth or state.stack[depth - 1] != "[":
        return False
    if shape is ResponseShape.ITEM_ARRAY:
        return True
    prefix = text[: state.item_list_start].rstrip()
    if not prefix.endswith(":"):
        return False
    return prefix[:-1].rstrip().endswith(f'"{items_key}"')


def _item_list(value: ParsedContent, items_key: str) -> Optional[List[Any]]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict) and isinstance(value.get(items_key), list):
        return value[items_key]
    return None


def _mark_truncated(items: List[Any]) -> None:
    last = items[-1] if items else None
    if isinstance(last, dict):
        last[TRUNCATION_FLAG] = True
        last.setdefault("explanation", TRUNCATION_EXPLANATION)


def _load(candidate: str) -> Optional[ParsedContent]:
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, (dict, list)) else None


def repair_truncated_json(
    text: str, shape: ResponseShape, items_key: str = "questions"
) -> Optional[Tuple[ParsedContent, bool]]:
    """Try to recover a structure from a reply that was cut off.

    Args:
        text: Reply text starting at the top-level opening bracket
        shape: Expected layout, which fixes the depth of the item list
        items_key: Key of the item list when the reply is an object

    Returns:
        Tuple of (parsed value, whether its last item is incomplete), or None
        when no repair produced valid JSON
    """
    state = _scan(text, shape.item_depth)
    closing = _closing_sequence(state.stack)
    cut_inside_item = _cut_inside_item(text, state, shape, items_key)

    # Synthetic completion: finish the open value and close every bracket
    for completion in _completions(text, state):
        value = _load(completion + closing)
        if value is None:
            continue
        items = _item_list(value, items_key) if cut_inside_item else None
        if items:
            _mark_truncated(items)
            return value, True
        return value, False

    # Cut back to the last complete item and close the structure there
    for end, stack in reversed(state.item_ends):
        value = _load(text[:end] + _closing_sequence(stack))
        if value is not None:
            return value, False

    return None


class ResponseNormalizer:
    """Converts raw provider text into parsed JSON content."""

    def __init__(self, metrics: Optional[GatewayMetrics] = None):
        self.metrics = metrics or get_metrics()

    def parse(self, raw: str) -> ParsedContent:
        """Parse a model reply into a JSON object or array.

        Args:
            raw: Raw reply text

        Returns:
            Parsed dict or list

        Raises:
            MalformedResponseError: If the reply holds no valid JSON structure
        """
        if not raw or not raw.strip():
            raise MalformedResponseError("Empty response from AI", raw or "")

        candidate = extract_json_candidate(raw)
        try:
            value = json.loads(candidate)
        except ValueError as e:
            logger.debug(f"Failed to parse AI response: {candidate[:_PREVIEW_CHARS]!r}")
            raise MalformedResponseError(f"Invalid JSON response from AI: {e}", raw) from e

        if not isinstance(value, (dict, list)):
            raise MalformedResponseError(
                f"Expected a JSON object or array, got {type(value).__name__}", raw
            )
        return value

    def parse_with_repair(
        self,
        raw: str,
        shape: ResponseShape,
        items_key: str = "questions",
        drop_truncated: bool = True,
    ) -> ParsedContent:
        """Parse a reply, repairing truncation when direct parsing fails.

        Args:
            raw: Raw reply text
            shape: Layout the caller expects
            items_key: Key of the item list for object-shaped replies
            drop_truncated: Remove the incomplete trailing item from the result

        Returns:
            Parsed dict or list

        Raises:
            MalformedResponseError: If neither parsing nor repair succeeded
        """
        try:
            return self.parse(raw)
        except MalformedResponseError as original:
            cleaned = strip_markdown_code_blocks(raw or "")
            start = cleaned.find(shape.opener)
            if start == -1:
                raise

            repaired = repair_truncated_json(cleaned[start:], shape, items_key)
            if repaired is None:
                logger.warning(f"Could not repair AI response as {shape.value}")
                raise original

        value, has_partial_item = repaired
        self.metrics.record_repair()
        if has_partial_item and drop_truncated:
            items = _item_list(value, items_key)
            if items:
                items.pop()
        logger.info(
            f"Repaired truncated AI response as {shape.value} "
            f"(partial item {'dropped' if has_partial_item and drop_truncated else 'kept'})"
        )
        return value
