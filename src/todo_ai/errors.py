"""
Error taxonomy.

Only InvalidInputError is meant to reach callers of the engine; the
inference errors are absorbed at the fallback boundary.
"""

from __future__ import annotations


class TodoAIError(Exception):
    """Base class for all todo_ai errors."""


class InvalidInputError(TodoAIError, ValueError):
    """Task text is empty or whitespace only."""


class InferenceError(TodoAIError):
    """Remote inference did not produce a usable answer."""


class TransientInferenceError(InferenceError):
    """Rate limiting or a transient network failure; safe to retry."""


class FatalInferenceError(InferenceError):
    """Auth failure, malformed request or unsupported model; never retried."""


class ResponseParseError(FatalInferenceError):
    """Model output held no usable JSON object or failed validation."""


class ThrottledError(InferenceError):
    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"throttled after {attempts} attempts{detail}")
