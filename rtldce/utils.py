from __future__ import annotations as _


def starred_box(text: str) -> str:
    """Frame `text` in asterisks, one line per input line."""
    lines = text.splitlines() or [""]
    width = max(len(line) for line in lines)
    border = "*" * (width + 4)
    body = [f"* {line.ljust(width)} *" for line in lines]
    return "\n".join([border, *body, border])
