"""
Turn raw model output into validated result types.

Models wrap JSON in prose or code fences, so the first balanced
``{...}`` that decodes to an object is used.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import ResponseParseError
from .fallback import MAX_TIPS, PARSE_RULES, classify_category
from .models import Category, ParsedTask, Priority, Source, SuggestionResult


def _balanced_end(text: str, start: int) -> int | None:
    """Index one past the brace closing text[start], ignoring braces in strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            try:
                data = json.loads(text[start:end])
            except ValueError:
                data = None
            if isinstance(data, dict):
                return data
        start = text.find("{", start + 1)
    return None


def _require_object(raw: str) -> dict[str, Any]:
    data = extract_json_object(raw)
    if data is None:
        raise ResponseParseError("no JSON object in model output")
    return data


def parse_suggestion(raw: str) -> SuggestionResult:
    data = _require_object(raw)
    category = Category.coerce(data.get("category"))
    if category is None:
        raise ResponseParseError(f"unknown category: {data.get('category')!r}")
    priority = Priority.coerce(data.get("priority"))
    if priority is None:
        raise ResponseParseError(f"unknown priority: {data.get('priority')!r}")
    tips = data.get("tips")
    if isinstance(tips, str):
        tips = [tips]
    if not isinstance(tips, list):
        raise ResponseParseError("tips must be a list")
    cleaned = [t.strip() for t in tips if isinstance(t, str) and t.strip()]
    return SuggestionResult(
        category=category,
        priority=priority,
        tips=tuple(cleaned[:MAX_TIPS]),
        source=Source.MODEL,
    )


def parse_task(raw: str, original_text: str) -> ParsedTask:
    data = _require_object(raw)
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ResponseParseError("missing title")
    description = data.get("description")
    if not isinstance(description, str):
        description = ""
    # Unknown model categories are reclassified from the input text.
    category = Category.coerce(data.get("category")) or classify_category(
        original_text, PARSE_RULES
    )
    return ParsedTask(
        title=title.strip(),
        description=description.strip(),
        category=category,
        source=Source.MODEL,
    )
