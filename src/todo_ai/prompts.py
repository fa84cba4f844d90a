"""
Prompt builders.

Prompts are pure functions of their inputs so a retried attempt sends
exactly the same request.
"""

from __future__ import annotations

from .models import Category, Priority

_CATEGORIES = "/".join(c.value for c in Category)
_PRIORITIES = "/".join(p.value for p in Priority)


def _quote(text: str) -> str:
    return text.strip().replace('"', "'")


def suggestion_prompt(
    text: str, due_date: str | None = None, description: str | None = None
) -> str:
    lines = [f'Task: "{_quote(text)}"']
    if description and description.strip():
        lines.append(f'Details: "{_quote(description)}"')
    if due_date and due_date.strip():
        lines.append(f"Due: {due_date.strip()}")
    lines += [
        "",
        "Categorize this task briefly.",
        f"category: one of {_CATEGORIES}",
        f"priority: one of {_PRIORITIES}",
        "tips: 1-3 short practical tips",
        'Return only JSON: {"category":"...","priority":"...","tips":["..."]}',
    ]
    return "\n".join(lines)


def parse_prompt(text: str) -> str:
    return (
        f'Extract from: "{_quote(text)}"\n'
        f"category: one of {_CATEGORIES}\n"
        'Return only JSON: {"title":"...","description":"...","category":"..."}'
    )
