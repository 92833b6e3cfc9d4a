"""
Pull a single JSON value out of free-form model output.

Models asked for "JSON only" still wrap the payload in code fences or add a
sentence before and after it.  The parser strips fences, slices from the
earliest opening bracket to the matching last closing bracket and hands the
span to the strict JSON decoder.  Nothing is repaired beyond that.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from .errors import ParseError

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)
_CLOSERS = {"{": "}", "[": "]"}


def snippet_of(text: Any, limit: int = 200) -> str:
    """Short single-line excerpt used in error messages and logs."""
    if not isinstance(text, str):
        return repr(text)[:limit]
    flattened = " ".join(text.split())
    if len(flattened) <= limit:
        return flattened
    return flattened[:limit] + "..."


def extract_json(text: Any) -> Any:
    """Return the JSON object or array embedded in ``text``.

    Raises:
        ParseError: when no bracketed span exists or the span is not valid JSON.
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseError("Model returned no text.", snippet=snippet_of(text))

    cleaned = _FENCE_PATTERN.sub("", text).strip()

    positions = {char: cleaned.find(char) for char in _CLOSERS}
    candidates = [(pos, char) for char, pos in positions.items() if pos != -1]
    if not candidates:
        raise ParseError("No JSON object or array found in model output.", snippet=snippet_of(text))
    start, opener = min(candidates)
    end = cleaned.rfind(_CLOSERS[opener])
    if end < start:
        raise ParseError(
            f"Unterminated JSON {'object' if opener == '{' else 'array'} in model output.",
            snippet=snippet_of(text),
        )

    span = cleaned[start : end + 1]

    def reject_constant(name: str) -> Any:
        raise ParseError(f"Model output used non-standard JSON constant {name}.", snippet=snippet_of(span))

    try:
        return json.loads(span, parse_constant=reject_constant)
    except json.JSONDecodeError as exc:
        logger.debug("Strict JSON decode failed at pos %s: %s", exc.pos, exc.msg)
        raise ParseError(f"Model output was not valid JSON: {exc.msg}", snippet=snippet_of(span)) from exc
