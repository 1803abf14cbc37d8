"""
Best-effort recovery of a JSON object from free-form model output.

The text-generation service is asked for pure JSON but does not guarantee it.
The observed failure modes are, in order of frequency: markdown fences around
the payload, prose before/after it, trailing commas, doubled colons after a
key, and the occasional comment. Repairs are tried from least to most
destructive so an otherwise valid document is never rewritten more than needed.
"""

import json
import re
from typing import Any, Callable, List, Optional, Tuple

from app.platform.errors import UnparsableResponse
from app.platform.logger import get_structured_logger

logger = get_structured_logger(__name__)

_FENCE_OPEN = re.compile(r"\A\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*\Z")
_DOUBLE_COLON = re.compile(r":(\s*:)+")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_REPEATED_COMMAS = re.compile(r",(\s*,)+")
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_LAZY_OBJECT = re.compile(r"\{[\s\S]*?\}")

MAX_TRAILING_COMMA_PASSES = 20


def strip_code_fences(text: str) -> str:
    """Remove a fence that wraps the whole payload. Backticks elsewhere are content."""
    cleaned = _FENCE_OPEN.sub("", text.strip())
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def find_balanced_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span, ignoring braces inside string literals."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_json_object(text: str) -> str:
    balanced = find_balanced_object(text)
    if balanced is not None:
        return balanced

    greedy = _GREEDY_OBJECT.search(text)
    if greedy:
        logger.info("json_repair.extract", method="greedy_regex")
        return greedy.group(0)

    lazy = _LAZY_OBJECT.search(text)
    if lazy:
        logger.info("json_repair.extract", method="non_greedy_regex")
        return lazy.group(0)

    raise UnparsableResponse(
        f"Could not extract JSON from response: no object found "
        f"(has braces: {'{' in text and '}' in text}, has quotes: {chr(34) in text})"
    )


def split_string_literals(text: str) -> List[Tuple[bool, str]]:
    """Split ``text`` into ``(is_string, segment)`` runs. An unterminated string runs to the end."""
    segments: List[Tuple[bool, str]] = []
    start = 0
    i = 0
    length = len(text)
    while i < length:
        if text[i] != '"':
            i += 1
            continue
        if i > start:
            segments.append((False, text[start:i]))
        end = i + 1
        while end < length and text[end] != '"':
            end += 2 if text[end] == "\\" else 1
        end = min(end + 1, length)
        segments.append((True, text[i:end]))
        start = i = end
    if start < length:
        segments.append((False, text[start:]))
    return segments


def _outside_strings(text: str, repair: Callable[[str], str]) -> str:
    return "".join(
        segment if is_string else repair(segment)
        for is_string, segment in split_string_literals(text)
    )


def fix_double_colons(text: str) -> str:
    return _outside_strings(text, lambda s: _DOUBLE_COLON.sub(":", s))


def strip_trailing_commas(text: str, passes: int = 1) -> str:
    for _ in range(passes):
        fixed = _outside_strings(text, lambda s: _TRAILING_COMMA.sub(r"\1", s))
        if fixed == text:
            break
        text = fixed
    return text


def strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments that sit outside string literals."""
    out: List[str] = []
    i = 0
    length = len(text)
    in_string = False
    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if char == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
            continue
        if char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(char)
            i += 1
    return "".join(out)


def collapse_repeated_commas(text: str) -> str:
    return _outside_strings(text, lambda s: _REPEATED_COMMAS.sub(",", s))


def _loads(text: str) -> Any:
    return json.loads(text)


# Each strategy builds on the previous one.
STRATEGIES: List[Tuple[str, Callable[[str], str]]] = [
    ("direct", lambda s: s),
    ("double_colons", fix_double_colons),
    ("trailing_commas", lambda s: strip_trailing_commas(fix_double_colons(s))),
    (
        "trailing_commas_multi_pass",
        lambda s: strip_trailing_commas(fix_double_colons(s), MAX_TRAILING_COMMA_PASSES),
    ),
    (
        "comments",
        lambda s: strip_trailing_commas(
            strip_comments(fix_double_colons(s)), MAX_TRAILING_COMMA_PASSES
        ),
    ),
    (
        "repeated_commas",
        lambda s: strip_trailing_commas(
            collapse_repeated_commas(strip_comments(fix_double_colons(s))),
            MAX_TRAILING_COMMA_PASSES,
        ),
    ),
]


def parse_robust(raw_text: str) -> Any:
    """
    Parse a JSON object out of ``raw_text``, repairing common defects.

    Raises:
        UnparsableResponse: if no object can be located or every strategy fails.
    """
    if raw_text is None:
        raise UnparsableResponse("Could not extract JSON from response: empty response")

    cleaned = strip_code_fences(raw_text)
    candidate = extract_json_object(cleaned)

    last_error: Optional[json.JSONDecodeError] = None
    for index, (name, repair) in enumerate(STRATEGIES, start=1):
        try:
            result = _loads(repair(candidate))
        except json.JSONDecodeError as e:
            if last_error is None:
                last_error = e
            continue
        if index > 1:
            logger.info("json_repair.parsed", strategy=name, attempt=index)
        return result

    position = last_error.pos if last_error else -1
    logger.warning(
        "json_repair.failed",
        length=len(candidate),
        error_position=position,
        excerpt=candidate[max(0, position - 150):position + 150] if position >= 0 else candidate[:300],
    )
    raise UnparsableResponse(
        f"Failed to parse JSON after {len(STRATEGIES)} repair attempts. "
        f"Original error: {last_error.msg if last_error else 'unknown'} at position {position}"
    )
