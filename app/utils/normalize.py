from __future__ import annotations

import re

_ZERO_WIDTH = re.compile("[\u200b\ufeff]")
_WHITESPACE = re.compile(r"\s+")
# Arabic-Indic (U+0660..) and Extended Arabic-Indic (U+06F0..) digits
_DIGITS = str.maketrans(
    {**{chr(0x0660 + i): str(i) for i in range(10)}, **{chr(0x06F0 + i): str(i) for i in range(10)}}
)


def normalize_login(value: str, domain: str) -> str:
    """Bare user ids log in as ``<id>@<domain>``; emails pass through."""
    value = value.strip()
    if not value:
        return value
    return value if "@" in value else f"{value}@{domain}"


def normalize_code(value: str | None) -> str:
    """Employee codes typed or pasted by admins: drop invisible chars and spaces, latinise digits."""
    text = (value or "").strip()
    text = _ZERO_WIDTH.sub("", text)
    text = _WHITESPACE.sub("", text)
    return text.translate(_DIGITS)
