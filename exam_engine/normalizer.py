import json
import logging
import re
from typing import Any, Dict

from exam_engine.errors import PREVIEW_CHARS, MalformedResponse, MissingQuestionsField

logger = logging.getLogger(__name__)

# Anchored: only a fence that opens / closes the whole response is removed
_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def _loads_object(text: str):
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return None
    return value


def normalize_response(raw_text: str, preview_chars: int = PREVIEW_CHARS) -> Dict[str, Any]:
    """
    Raw model text -> parsed object with a `questions` list.

    1) trim and strip a wrapping ``` fence (with optional language tag)
    2) if that does not parse, take the span from the first "{" to the last "}"
    3) fail with MalformedResponse (bounded preview) when nothing parses,
       MissingQuestionsField when the object has no `questions` array
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise MalformedResponse(raw_text or "", "empty response", preview_chars)

    cleaned = strip_code_fence(raw_text)
    parsed = _loads_object(cleaned)

    if not isinstance(parsed, dict):
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end > start:
            span = _loads_object(cleaned[start:end + 1])
            if span is not None:
                parsed = span

    if parsed is None:
        logger.error("Failed to parse JSON. Raw response: %s", raw_text[:preview_chars])
        raise MalformedResponse(raw_text, "no JSON object found", preview_chars)

    if not isinstance(parsed, dict) or not isinstance(parsed.get("questions"), list):
        raise MissingQuestionsField()

    return parsed
