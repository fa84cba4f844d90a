"""
AWS Lambda handler for the AI task route (API Gateway HTTP API, payload v2).

Body: {"task": "...", "mode": "suggest" | "parse"}; mode defaults to suggest.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any

from .cache import TTLCache
from .config import Settings, load_settings
from .engine import SuggestionEngine
from .errors import InvalidInputError
from .logs import configure_logging, log_event
from .models import Mode

logger = logging.getLogger(__name__)

# Survives warm invocations of the same container.
_CACHE: TTLCache | None = None


def _shared_cache(settings: Settings) -> TTLCache | None:
    global _CACHE
    if settings.cache_ttl_seconds <= 0:
        return None
    if _CACHE is None:
        _CACHE = TTLCache(settings.cache_ttl_seconds, settings.cache_max_entries)
    return _CACHE


def _rid(context: Any) -> str | None:
    return getattr(context, "aws_request_id", None)


def _user_id(event: dict[str, Any]) -> str:
    ctx = event.get("requestContext") or {}
    claims = ((ctx.get("authorizer") or {}).get("claims")) or {}
    return claims.get("sub") or "anonymous"


def _response(status: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


def _success(data: Any, status: int = 200) -> dict[str, Any]:
    return _response(status, {"success": True, "data": data})


def _error(message: str, status: int = 500) -> dict[str, Any]:
    return _response(status, {"success": False, "error": message})


def _get_body(event: dict[str, Any]) -> dict[str, Any]:
    body = event.get("body")
    try:
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body or b"")
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8")
        data = json.loads(body or "{}")
    except (ValueError, UnicodeDecodeError):
        # binascii.Error and JSONDecodeError are ValueErrors
        return {}
    return data if isinstance(data, dict) else {}


def build_engine(settings: Settings | None = None) -> SuggestionEngine:
    settings = settings or load_settings()
    return SuggestionEngine(settings, cache=_shared_cache(settings))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    configure_logging()
    start_ts = time.time()
    user_id = _user_id(event)
    log_event("ai_request", rid=_rid(context), userId=user_id)

    payload = _get_body(event)
    task = payload.get("task")
    if not isinstance(task, str) or not task.strip():
        log_event("ai_request_invalid", rid=_rid(context), reason="missing_task")
        return _error("Task is required", 400)

    mode = Mode.coerce(payload.get("mode")) or Mode.SUGGEST
    due_date = payload.get("dueDate")
    description = payload.get("description")
    engine = build_engine()

    try:
        if mode is Mode.PARSE:
            result = engine.run_sync(engine.parse(task))
        else:
            result = engine.run_sync(
                engine.suggest(
                    task,
                    due_date=due_date if isinstance(due_date, str) else None,
                    description=description if isinstance(description, str) else None,
                )
            )
    except InvalidInputError as e:
        log_event("ai_request_invalid", rid=_rid(context), reason=str(e))
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("AI task processing failed")
        log_event("ai_request_error", logging.ERROR, rid=_rid(context), error=str(e))
        return _error("Failed to process task")

    log_event(
        "ai_request_ok",
        rid=_rid(context),
        userId=user_id,
        mode=mode.value,
        source=result.source.value,
        ms_total=int((time.time() - start_ts) * 1000),
    )
    return _success(result.to_dict())
