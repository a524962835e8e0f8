"""
JSON codec for Copydesk
=======================

Thin orjson wrapper exposing the small ``json``-style surface the HTTP client
and tests use. orjson works on bytes; ``dumps`` returns str for callers that
build text payloads and ``dumps_bytes`` skips the decode for request bodies.
``extract_json`` reads the JSON answers of the SEO and keyword prompts.
"""

import re
from typing import Any, Callable, Optional, Union

import orjson

JSONDecodeError = orjson.JSONDecodeError


def dumps_bytes(obj: Any, indent: Optional[int] = None, default: Optional[Callable] = None) -> bytes:
    """Serialize ``obj`` to UTF-8 JSON bytes"""
    option = orjson.OPT_SERIALIZE_UUID | orjson.OPT_NON_STR_KEYS
    if indent is not None:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=default, option=option)


def dumps(obj: Any, indent: Optional[int] = None, default: Optional[Callable] = None) -> str:
    """Serialize ``obj`` to a JSON string"""
    return dumps_bytes(obj, indent=indent, default=default).decode("utf-8")


def loads(data: Union[str, bytes, bytearray]) -> Any:
    """Deserialize JSON text or bytes; raises JSONDecodeError on malformed input"""
    return orjson.loads(data)


_FENCED_JSON_RE = re.compile(r"^```(?:json|JSON)?\s*\n([\s\S]*?)\n?```$")
_JSON_SPAN_RE = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")


def extract_json(content: Optional[str]) -> Any:
    """
    Parse JSON out of model output.

    Handles pure JSON, a single ```json fenced block, and JSON embedded in
    surrounding prose (the outermost {...} or [...] span). Returns None when
    nothing parses.
    """
    if not content:
        return None
    stripped = content.strip()

    fenced = _FENCED_JSON_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()

    candidates = [stripped]
    span = _JSON_SPAN_RE.search(stripped)
    if span and span.group(0) != stripped:
        candidates.append(span.group(0))

    for candidate in candidates:
        try:
            return orjson.loads(candidate)
        except orjson.JSONDecodeError:
            continue
    return None
