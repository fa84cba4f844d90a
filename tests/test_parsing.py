import pytest

from todo_ai.errors import FatalInferenceError, ResponseParseError
from todo_ai.models import Category, Priority, Source
from todo_ai.parsing import extract_json_object, parse_suggestion, parse_task
from todo_ai.prompts import parse_prompt, suggestion_prompt


def test_extract_json_from_prose():
    raw = 'Sure! Here you go:\n{"category": "Work", "priority": "high"}\nHope it helps.'
    assert extract_json_object(raw) == {"category": "Work", "priority": "high"}


def test_extract_json_handles_nesting_and_braces_in_strings():
    raw = 'x {"title": "fix {braces}", "meta": {"a": 1}} y {"second": true}'
    assert extract_json_object(raw) == {"title": "fix {braces}", "meta": {"a": 1}}


def test_extract_json_skips_malformed_candidate():
    raw = '{not json} then {"ok": 1}'
    assert extract_json_object(raw) == {"ok": 1}


@pytest.mark.parametrize("raw", [None, "", "no json here", '{"unterminated": 1', "[1, 2]"])
def test_extract_json_none(raw):
    assert extract_json_object(raw) is None


def test_parse_suggestion_normalizes_case_and_caps_tips():
    raw = '{"category": "health", "priority": "HIGH", "tips": ["a", " ", 3, "b", "c", "d"]}'
    res = parse_suggestion(raw)
    assert res.category is Category.HEALTH
    assert res.priority is Priority.HIGH
    assert res.tips == ("a", "b", "c")
    assert res.source is Source.MODEL


@pytest.mark.parametrize(
    "raw",
    [
        "Category: Work, Priority: high",
        '{"category": "Chores", "priority": "low", "tips": []}',
        '{"category": "Work", "priority": "urgent", "tips": []}',
        '{"category": "Work", "priority": "low", "tips": 5}',
    ],
)
def test_parse_suggestion_rejects_invalid_output(raw):
    with pytest.raises(ResponseParseError):
        parse_suggestion(raw)


def test_parse_errors_are_fatal_inference_errors():
    assert issubclass(ResponseParseError, FatalInferenceError)


def test_parse_task_unknown_category_reclassified_from_input():
    raw = '{"title": "Call mom", "description": "", "category": "Family stuff"}'
    task = parse_task(raw, "Call mom tonight")
    assert task.title == "Call mom"
    assert task.category is Category.SOCIAL


def test_parse_task_requires_title():
    with pytest.raises(ResponseParseError):
        parse_task('{"description": "x", "category": "Work"}', "x")


def test_prompts_are_deterministic():
    assert suggestion_prompt("Buy milk", "2024-05-01", "2%") == suggestion_prompt(
        "Buy milk", "2024-05-01", "2%"
    )
    assert parse_prompt("Buy milk") == parse_prompt("Buy milk")
    assert "Due: 2024-05-01" in suggestion_prompt("Buy milk", "2024-05-01")
    assert '"title"' in parse_prompt("Buy milk")
