from __future__ import annotations

import re

_WORD_RE = re.compile(r"\w\S*")


def to_title_case(text: str) -> str:
    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text or "")


def truncate(text: str, max_chars: int) -> str:
    text = text or ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def city_key(city: str) -> str:
    return (city or "").strip().lower()
