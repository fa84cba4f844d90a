"""
Value types passed between the engine, the rule engine and callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidInputError


class _Coercible(str, Enum):
    @classmethod
    def coerce(cls, value: Any):
        """Case-insensitive lookup by value; None when nothing matches."""
        if not isinstance(value, str):
            return None
        needle = value.strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        return None


class Category(_Coercible):
    WORK = "Work"
    PERSONAL = "Personal"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    LEARNING = "Learning"
    FINANCE = "Finance"
    HOME = "Home"
    SOCIAL = "Social"
    TRAVEL = "Travel"
    CREATIVE = "Creative"
    GENERAL = "General"


class Priority(_Coercible):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Mode(_Coercible):
    SUGGEST = "suggest"
    PARSE = "parse"


class Source(str, Enum):
    MODEL = "model"
    FALLBACK = "fallback"


def require_text(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise InvalidInputError("task text must be a non-empty string")
    return text


@dataclass(frozen=True)
class SuggestionRequest:
    text: str
    due_date: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        require_text(self.text)


@dataclass(frozen=True)
class SuggestionResult:
    category: Category
    priority: Priority
    tips: tuple[str, ...] = field(default_factory=tuple)
    source: Source = Source.MODEL

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "priority": self.priority.value,
            "tips": list(self.tips),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class ParsedTask:
    title: str
    description: str
    category: Category
    source: Source = Source.MODEL

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "source": self.source.value,
        }
