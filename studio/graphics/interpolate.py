"""
Content interpolation for `{{token}}` placeholders.

The generated component carries the same rule in JavaScript; both sides use an
ASCII word pattern so a placeholder resolves identically in preview and playout.
"""

import re
from typing import Any, List, Mapping, Optional

TOKEN_PATTERN = re.compile(r"\{\{(\w+)\}\}", re.ASCII)


def format_value(value: Any) -> str:
    """Render a data value the way the browser would stringify it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def interpolate(content: Optional[str], data: Mapping[str, Any]) -> str:
    """
    Replace every `{{name}}` with `data[name]`.

    Placeholders whose name is absent from `data` (or mapped to None) are left
    untouched. Never raises for missing tokens.
    """
    if not content:
        return ""

    def _substitute(match):
        key = match.group(1)
        value = data.get(key)
        if value is None:
            return match.group(0)
        return format_value(value)

    return TOKEN_PATTERN.sub(_substitute, content)


def find_tokens(content: Optional[str]) -> List[str]:
    """Placeholder names in order of first appearance."""
    if not content:
        return []
    seen: List[str] = []
    for name in TOKEN_PATTERN.findall(content):
        if name not in seen:
            seen.append(name)
    return seen
