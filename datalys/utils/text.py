from __future__ import annotations

import re


_WORD = re.compile(r"\w\S*")


def pretty_print_text(
    text: str,
    *,
    max_length: int = -1,
    proper_case: bool = True,
    replace_underscores: bool = True,
) -> str:
    """Column-name style text for display: `net_sales` -> `Net Sales`."""
    result = text
    if replace_underscores:
        result = result.replace("_", " ")
    if proper_case:
        result = _WORD.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), result)
    if max_length > 0 and len(result) > max_length:
        result = result[:max_length] + "..."
    return result
