"""
Deterministic rule engine used when remote inference is unavailable.

Pure functions over the input text: no network, no randomness, no state.
Keyword matching is plain substring search on the lower-cased text, so
"cleaning" counts for "clean" and "know" counts for "now".
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import Category, ParsedTask, Priority, Source, SuggestionResult, require_text


@dataclass(frozen=True)
class CategoryRule:
    category: Category
    keywords: tuple[str, ...]
    tips: tuple[str, ...] = ()


# Declaration order is the tie-break order.
CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        Category.SHOPPING,
        ("buy", "shop", "groceries", "purchase", "order", "pick up", "store", "market",
         "amazon", "online"),
        ("Make a detailed list before shopping", "Compare prices across stores",
         "Check for coupons or deals"),
    ),
    CategoryRule(
        Category.WORK,
        ("work", "meeting", "report", "email", "project", "presentation", "deadline",
         "client", "office", "boss", "colleague", "review", "submit", "send"),
        ("Block focused time on your calendar", "Prepare an outline first",
         "Set a clear deadline"),
    ),
    CategoryRule(
        Category.HEALTH,
        ("exercise", "gym", "doctor", "health", "medicine", "workout", "run", "yoga",
         "dentist", "appointment", "vitamin", "sleep", "diet", "walk"),
        ("Schedule at a consistent time daily", "Track your progress",
         "Start small and build up"),
    ),
    CategoryRule(
        Category.LEARNING,
        ("learn", "study", "read", "course", "tutorial", "book", "practice", "skill",
         "class", "lesson", "research", "watch"),
        ("Set aside 25-minute focused sessions", "Take notes for better retention",
         "Review what you learned yesterday"),
    ),
    CategoryRule(
        Category.FINANCE,
        ("pay", "bill", "budget", "bank", "money", "invoice", "tax", "expense", "save",
         "invest", "transfer"),
        ("Set up automatic payments if possible", "Keep receipts organized",
         "Review your spending weekly"),
    ),
    CategoryRule(
        Category.HOME,
        ("clean", "fix", "repair", "organize", "laundry", "dishes", "cook", "garden",
         "furniture", "decorate", "maintenance"),
        ("Break into room-by-room tasks", "Set a timer for focused cleaning",
         "Gather supplies before starting"),
    ),
    CategoryRule(
        Category.SOCIAL,
        ("call", "family", "friend", "birthday", "party", "visit", "dinner", "lunch",
         "coffee", "meet", "celebrate", "gift"),
        ("Add to your calendar with reminders", "Prepare talking points if needed",
         "Follow up after the event"),
    ),
    CategoryRule(
        Category.TRAVEL,
        ("travel", "trip", "flight", "hotel", "book", "vacation", "pack", "passport",
         "visa", "reservation"),
        ("Create a packing checklist", "Book early for better prices",
         "Save confirmation numbers"),
    ),
    CategoryRule(
        Category.CREATIVE,
        ("write", "design", "create", "draw", "paint", "music", "photo", "video", "blog",
         "art"),
        ("Start with a rough draft or sketch", "Set a creative block in your schedule",
         "Gather inspiration first"),
    ),
)

GENERAL_TIPS: tuple[str, ...] = (
    "Break this task into smaller steps",
    "Set a specific deadline",
    "Review progress regularly",
)

# Reduced table for natural-language parsing.
PARSE_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(Category.SHOPPING, ("buy", "shop", "groceries", "order", "purchase")),
    CategoryRule(Category.WORK, ("work", "meeting", "report", "email", "project", "deadline")),
    CategoryRule(Category.HEALTH, ("exercise", "gym", "doctor", "health", "workout")),
    CategoryRule(Category.LEARNING, ("learn", "study", "read", "course", "practice")),
    CategoryRule(Category.FINANCE, ("pay", "bill", "bank", "money", "budget")),
    CategoryRule(Category.HOME, ("clean", "fix", "organize", "home", "laundry")),
    CategoryRule(Category.SOCIAL, ("call", "family", "friend", "meet", "visit")),
)

HIGH_PRIORITY_WORDS: tuple[str, ...] = (
    "urgent", "asap", "important", "deadline", "today", "now", "critical", "emergency",
    "immediately", "priority",
)
LOW_PRIORITY_WORDS: tuple[str, ...] = (
    "later", "someday", "maybe", "eventually", "when possible", "no rush", "whenever",
)

# (triggers, tip); first matching row wins.
TASK_SPECIFIC_TIPS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("tomorrow", "today"), "This is time-sensitive - prioritize it in your schedule"),
    (("weekly", "every"), "Consider setting up a recurring reminder"),
    (("finish", "complete"), "Review what's already done before continuing"),
    (("start", "begin"), "Spend 5 minutes planning before you start"),
    (("prepare", "plan"), "Write down all the components you need"),
)

MAX_TIPS = 3
TITLE_FALLBACK_CHARS = 50
_TERMINATOR_RE = re.compile(r"[.!?\n]")


def match_rule(text: str, rules: tuple[CategoryRule, ...] = CATEGORY_RULES) -> CategoryRule | None:
    """Rule with the strictly greatest keyword count; earliest wins ties."""
    lowered = text.lower()
    best: CategoryRule | None = None
    best_count = 0
    for rule in rules:
        count = sum(1 for kw in rule.keywords if kw in lowered)
        if count > best_count:
            best, best_count = rule, count
    return best


def classify_category(text: str, rules: tuple[CategoryRule, ...] = CATEGORY_RULES) -> Category:
    rule = match_rule(text, rules)
    return rule.category if rule else Category.GENERAL


def classify_priority(text: str) -> Priority:
    lowered = text.lower()
    if any(w in lowered for w in HIGH_PRIORITY_WORDS):
        return Priority.HIGH
    if any(w in lowered for w in LOW_PRIORITY_WORDS):
        return Priority.LOW
    return Priority.MEDIUM


def task_specific_tip(text: str) -> str | None:
    lowered = text.lower()
    for triggers, tip in TASK_SPECIFIC_TIPS:
        if any(t in lowered for t in triggers):
            return tip
    return None


def build_tips(text: str, canned: tuple[str, ...]) -> tuple[str, ...]:
    tips = list(canned)
    extra = task_specific_tip(text)
    if extra and extra not in tips:
        tips = [extra, *tips[: MAX_TIPS - 1]]
    return tuple(tips[:MAX_TIPS])


def fallback_suggestion(text: str) -> SuggestionResult:
    require_text(text)
    rule = match_rule(text)
    category = rule.category if rule else Category.GENERAL
    canned = rule.tips if rule else GENERAL_TIPS
    return SuggestionResult(
        category=category,
        priority=classify_priority(text),
        tips=build_tips(text, canned),
        source=Source.FALLBACK,
    )


def split_title(text: str) -> tuple[str, str]:
    """Split into (title, description) at the first sentence terminator.

    If the text before the terminator is blank, the title is the first
    50 characters of the trimmed input and the description is the rest.
    """
    stripped = text.strip()
    m = _TERMINATOR_RE.search(stripped)
    if m is None:
        return stripped, ""
    title = stripped[: m.start()].strip()
    if title:
        return title, stripped[m.end():].strip()
    title = stripped[:TITLE_FALLBACK_CHARS].strip()
    return title, stripped[TITLE_FALLBACK_CHARS:].strip()


def fallback_parse(text: str) -> ParsedTask:
    require_text(text)
    title, description = split_title(text)
    return ParsedTask(
        title=title,
        description=description,
        category=classify_category(text, PARSE_RULES),
        source=Source.FALLBACK,
    )
