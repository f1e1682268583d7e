from __future__ import annotations

import json
import re
from typing import Any, List, Optional

_FENCE_OPEN_RE = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE_RE = re.compile(r"```\s*")


def parse_json_array(text: str) -> List[Any]:
    """Extract a JSON array from model output; never raises.

    Model output near the token limit is often cut mid-object, so a truncated
    array is recovered up to its last complete element.
    """
    recovered = recover_json_array(text)
    return recovered if recovered is not None else []


def recover_json_array(text: str) -> Optional[List[Any]]:
    if not text:
        return None

    direct = _loads(text)
    if isinstance(direct, list):
        return direct

    cleaned = _FENCE_RE.sub("", _FENCE_OPEN_RE.sub("", text))
    start = cleaned.find("[")
    if start < 0:
        return None

    end = cleaned.rfind("]")
    span = cleaned[start : end + 1] if end > start else cleaned[start:]

    parsed = _loads(span)
    if isinstance(parsed, list):
        return parsed

    last_complete = span.rfind("},")
    if last_complete > 0:
        parsed = _loads(span[: last_complete + 1] + "]")
        if isinstance(parsed, list):
            return parsed

    return None


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None
