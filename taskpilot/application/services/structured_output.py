"""
Structured-output recovery from free-form model text.

The model is asked for JSON but is not a strict JSON emitter: answers come
wrapped in code fences, surrounded by commentary, or with trailing commas.
Those are tolerated. Deeper damage (unescaped quotes, truncated objects) is
not guessed at and surfaces as ``AIParseError``.
"""

import json
import re
from typing import Any, Optional, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from taskpilot.domain.errors import AIParseError
from taskpilot.infra.config.logging_config import get_logger

T = TypeVar("T")

RAW_PREVIEW_CHARS = 2000

_OPENING_FENCE = re.compile(r"\A\s*```[\w+-]*[ \t]*(?:\r?\n|\Z)")
_CLOSING_FENCE = re.compile(r"(?:\r?\n)?[ \t]*```\s*\Z")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_log = get_logger("ai.parser")


def strip_code_fences(text: str) -> str:
    """Remove an opening and a closing fence line around the whole answer.

    Fence markers anywhere else are content (code inside a JSON string) and
    are kept.
    """
    text = _OPENING_FENCE.sub("", text, count=1)
    return _CLOSING_FENCE.sub("", text, count=1).strip()


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def _decode_span(text: str, opener: str, closer: str) -> Optional[Any]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    candidate = text[start : end + 1]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    # repair only what strict decoding rejected
    try:
        return json.loads(remove_trailing_commas(candidate))
    except json.JSONDecodeError:
        return None


def truncate(text: str, limit: int = RAW_PREVIEW_CHARS) -> str:
    return text[:limit]


def extract_json(text: str, *, kind: str = "unknown") -> Any:
    """Recover the first top-level JSON object (or, failing that, array).

    Raises:
        AIParseError: when neither an object nor an array decodes.
    """
    cleaned = strip_code_fences(text or "")

    for opener, closer in (("{", "}"), ("[", "]")):
        value = _decode_span(cleaned, opener, closer)
        if value is not None:
            _log.debug("ai.parse.ok", kind=kind, shape=type(value).__name__)
            return value

    _log.error("ai.parse.failed", kind=kind, raw=truncate(text or ""))
    raise AIParseError(
        "AI response could not be parsed as JSON",
        details={"kind": kind, "raw": truncate(text or "")},
    )


def parse_structured(
    text: str, target: Union[Type[T], Any], *, kind: str = "unknown"
) -> T:
    """Decode ``text`` and validate it into ``target``.

    ``target`` is anything pydantic can build a ``TypeAdapter`` for: a model
    class, ``dict[str, int]``, ``list[SomeModel]`` and so on.
    """
    payload = extract_json(text, kind=kind)
    try:
        return TypeAdapter(target).validate_python(payload)
    except ValidationError as exc:
        _log.error(
            "ai.parse.invalid_shape",
            kind=kind,
            errors=exc.error_count(),
            raw=truncate(text),
        )
        raise AIParseError(
            "AI response did not match the expected structure",
            details={
                "kind": kind,
                "raw": truncate(text),
                "errors": exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            },
        ) from exc
