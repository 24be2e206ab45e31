"""Robust JSON extraction from free-form model output.

Never raises. Extraction strategies are tried in order and the first one that
yields valid JSON wins:

1. the trimmed text parsed directly;
2. the first fenced code block, with or without a language tag;
3. the first balanced ``{...}`` or ``[...]`` block found by bracket scanning.

``invalid_json`` means the source produced noise; ``schema_mismatch`` means it
produced valid JSON of the wrong shape. Upstream retry policy treats both as
structural.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final, Literal

_FENCE: Final = re.compile(r"```[\w.+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)

_PAIRS: Final[dict[str, str]] = {"{": "}", "[": "]"}

# Distinguishes "no value" from a successfully parsed JSON null
_NOTHING: Final = object()


class ParseErrorKind(StrEnum):
    INVALID_JSON = "invalid_json"
    SCHEMA_MISMATCH = "schema_mismatch"


@dataclass(frozen=True)
class ParseError:
    kind: ParseErrorKind
    message: str
    raw: str


@dataclass(frozen=True)
class ParseSuccess:
    data: Any
    success: Literal[True] = True


@dataclass(frozen=True)
class ParseFailure:
    error: ParseError
    success: Literal[False] = False


ParseResult = ParseSuccess | ParseFailure


# ═══════════════════════════════════════════════════════════════════════════
# EXTRACTION STRATEGIES
# ═══════════════════════════════════════════════════════════════════════════


def _try_load(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return _NOTHING


def extract_fenced(raw: str) -> str | None:
    """Return the contents of the first fenced code block, stripped."""
    match = _FENCE.search(raw)
    if match is None:
        return None
    body = match.group(1).strip()
    return body or None


def extract_balanced(raw: str) -> str | None:
    """Return the first balanced JSON object or array in ``raw``.

    Scanning starts at whichever of ``{`` or ``[`` occurs first. The scanner
    tracks nesting depth, whether it is inside a string literal, and whether
    the previous character was a backslash escape, so brackets inside string
    values never change the depth.

    Returns:
        The captured slice, or None when no opening bracket exists or the
        block never closes
    """
    starts = [i for i in (raw.find("{"), raw.find("[")) if i != -1]
    if not starts:
        return None

    start = min(starts)
    open_char = raw[start]
    close_char = _PAIRS[open_char]

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(raw)):
        ch = raw[i]

        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return raw[start : i + 1]

    return None


def extract_json(raw: str) -> Any:
    """Run the strategies in order. Returns the parsed value or ``_NOTHING``."""
    trimmed = raw.strip()

    value = _try_load(trimmed)
    if value is not _NOTHING:
        return value

    fenced = extract_fenced(trimmed)
    if fenced is not None:
        value = _try_load(fenced)
        if value is not _NOTHING:
            return value

    block = extract_balanced(trimmed)
    if block is not None:
        return _try_load(block)

    return _NOTHING


# ═══════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════


def parse_json(raw: str, validate: Callable[[Any], bool]) -> ParseResult:
    """Parse ``raw`` into a value accepted by ``validate``.

    Args:
        raw: Unreliable text, e.g. a model response
        validate: Shape check for the extracted value

    Returns:
        ``ParseSuccess`` with the value, or ``ParseFailure`` whose error kind is
        ``invalid_json`` or ``schema_mismatch``
    """
    value = extract_json(raw)

    if value is _NOTHING:
        return ParseFailure(
            ParseError(
                ParseErrorKind.INVALID_JSON,
                "Failed to extract valid JSON from response.",
                raw,
            )
        )

    try:
        accepted = bool(validate(value))
    except Exception as e:  # noqa: BLE001 - a crashing validator is a rejection
        return ParseFailure(
            ParseError(ParseErrorKind.SCHEMA_MISMATCH, f"Validator raised: {e}", raw)
        )

    if not accepted:
        return ParseFailure(
            ParseError(
                ParseErrorKind.SCHEMA_MISMATCH,
                "JSON parsed successfully but does not match expected schema.",
                raw,
            )
        )

    return ParseSuccess(value)
