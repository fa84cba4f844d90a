"""
Suggestion engine: remote inference with bounded retries, rule-based fallback.

Per call:

    START -> ATTEMPT_REMOTE(0..max_retries) -> SUCCESS | FALLBACK -> RESULT

Transient failures (throttling, timeouts) loop back into ATTEMPT_REMOTE with
exponential backoff until the retry budget is spent. Fatal failures,
unparseable output and an exhausted budget all go to FALLBACK. Only
InvalidInputError leaves suggest()/parse(); cancellation of the calling task
is never swallowed.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from .cache import TTLCache
from .config import Settings, load_settings
from .errors import (
    FatalInferenceError,
    InferenceError,
    ResponseParseError,
    ThrottledError,
    TodoAIError,
    TransientInferenceError,
)
from .fallback import fallback_parse, fallback_suggestion
from .llm import InferenceAdapter, adapter_for_model
from .logs import log_event
from .models import Mode, ParsedTask, SuggestionRequest, SuggestionResult, require_text
from .parsing import parse_suggestion, parse_task
from .prompts import parse_prompt, suggestion_prompt

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class _RetryState:
    attempt: int = 0
    next_delay: float = 0.0


class SuggestionEngine:
    def __init__(
        self,
        settings: Settings | None = None,
        adapter: InferenceAdapter | None = None,
        *,
        cache: TTLCache | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or load_settings()
        self._adapter = adapter
        self._sleep = sleep
        self._executor: ThreadPoolExecutor | None = None
        if cache is None and self.settings.cache_ttl_seconds > 0:
            cache = TTLCache(self.settings.cache_ttl_seconds, self.settings.cache_max_entries)
        self.cache = cache
        self._limiter = (
            asyncio.Semaphore(self.settings.llm_max_concurrency)
            if self.settings.llm_max_concurrency > 0
            else None
        )

    # ----- Public APIs -----
    async def suggest(
        self,
        text: str,
        *,
        due_date: str | None = None,
        description: str | None = None,
    ) -> SuggestionResult:
        request = SuggestionRequest(text, due_date=due_date, description=description)
        prompt = suggestion_prompt(request.text, request.due_date, request.description)
        return await self._run(
            Mode.SUGGEST,
            prompt,
            self.settings.suggest_max_tokens,
            parse_suggestion,
            lambda: fallback_suggestion(request.text),
        )

    async def parse(self, text: str) -> ParsedTask:
        require_text(text)
        return await self._run(
            Mode.PARSE,
            parse_prompt(text),
            self.settings.parse_max_tokens,
            lambda raw: parse_task(raw, text),
            lambda: fallback_parse(text),
        )

    async def invoke(self, prompt: str, max_tokens: int) -> str:
        """Call the model, retrying transient failures with backoff.

        Raises ThrottledError once max_retries retries have failed
        transiently, FatalInferenceError on the first fatal failure.
        """
        state = _RetryState()
        while True:
            try:
                return await self._attempt(prompt, max_tokens)
            except TransientInferenceError as e:
                if state.attempt >= self.settings.llm_max_retries:
                    raise ThrottledError(state.attempt + 1, e) from e
                state.next_delay = self.settings.backoff_seconds(state.attempt)
                log_event(
                    "inference_throttled_retry",
                    logging.WARNING,
                    attempt=state.attempt + 1,
                    max_attempts=self.settings.llm_max_retries + 1,
                    delay_ms=int(state.next_delay * 1000),
                    error=str(e),
                )
                state.attempt += 1
                await self._sleep(state.next_delay)

    def run_sync(self, coro: Coroutine[Any, Any, Any]) -> Any:
        """Drive an engine coroutine from synchronous code (e.g. a Lambda handler)."""
        try:
            return asyncio.run(coro)
        finally:
            self.close()

    def close(self) -> None:
        # Attempts abandoned by a timeout keep their worker until boto3 gives up;
        # the caller must not wait for them.
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    # ----- Helpers -----
    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(thread_name_prefix="todo-ai-invoke")
        return self._executor

    @property
    def adapter(self) -> InferenceAdapter:
        if self._adapter is None:
            self._adapter = adapter_for_model(
                self.settings.llm_model, self.settings.aws_region, self.settings.llm_timeout_seconds
            )
        return self._adapter

    async def _attempt(self, prompt: str, max_tokens: int) -> str:
        s = self.settings
        try:
            if self._limiter is None:
                return await self._call(prompt, max_tokens)
            async with self._limiter:
                return await self._call(prompt, max_tokens)
        except asyncio.TimeoutError as e:
            raise TransientInferenceError(
                f"attempt timed out after {s.llm_timeout_seconds}s"
            ) from e
        except TodoAIError:
            raise
        except Exception as e:
            # Adapters are expected to translate; anything else is not retryable.
            raise FatalInferenceError(f"{type(e).__name__}: {e}") from e

    async def _call(self, prompt: str, max_tokens: int) -> str:
        s = self.settings
        t0 = time.time()
        call = functools.partial(
            self.adapter.invoke, s.llm_model, prompt, max_tokens, s.llm_temperature
        )
        loop = asyncio.get_running_loop()
        out = await asyncio.wait_for(
            loop.run_in_executor(self._pool(), call), timeout=s.llm_timeout_seconds
        )
        log_event(
            "inference_ok",
            model=s.llm_model,
            ms=int((time.time() - t0) * 1000),
            prompt_chars=len(prompt),
            out_chars=len(out or ""),
        )
        return out

    async def _run(
        self,
        mode: Mode,
        prompt: str,
        max_tokens: int,
        parse: Callable[[str], Any],
        fallback: Callable[[], Any],
    ) -> Any:
        if not self.settings.ai_enabled:
            return self._fallback(mode, fallback, reason="disabled")

        key = (mode.value, self.settings.llm_model, prompt)
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                log_event("cache_hit", mode=mode.value)
                return hit

        try:
            result = parse(await self.invoke(prompt, max_tokens))
        except ThrottledError as e:
            log_event("inference_throttled", logging.WARNING, mode=mode.value, attempts=e.attempts)
            return self._fallback(mode, fallback, reason="throttled")
        except ResponseParseError as e:
            log_event("response_unparseable", logging.WARNING, mode=mode.value, error=str(e))
            return self._fallback(mode, fallback, reason="unparseable")
        except InferenceError as e:
            log_event(
                "inference_failed",
                logging.WARNING,
                mode=mode.value,
                kind=type(e).__name__,
                error=str(e),
            )
            return self._fallback(mode, fallback, reason=type(e).__name__)

        if self.cache is not None:
            self.cache.set(key, result)
        return result

    def _fallback(self, mode: Mode, fallback: Callable[[], Any], reason: str) -> Any:
        result = fallback()
        log_event("fallback_used", mode=mode.value, reason=reason)
        return result

