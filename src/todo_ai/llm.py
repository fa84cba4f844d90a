"""
Bedrock model adapters.

Each adapter turns (model id, prompt, max tokens, temperature) into one
InvokeModel call and returns plain response text. Provider errors are
translated into TransientInferenceError / FatalInferenceError here so the
engine never sees botocore types.
"""

from __future__ import annotations

import importlib
import json
from typing import Any, Protocol

from botocore.config import Config

from .errors import FatalInferenceError, TransientInferenceError

TRANSIENT_ERROR_CODES = frozenset(
    {
        "ThrottlingException",
        "TooManyRequestsException",
        "ServiceUnavailableException",
        "ModelNotReadyException",
        "InternalServerException",
        "ModelTimeoutException",
    }
)
TRANSIENT_ERROR_TYPES = frozenset(
    {
        "EndpointConnectionError",
        "ConnectionClosedError",
        "ConnectTimeoutError",
        "ReadTimeoutError",
    }
)
_TRANSIENT_MESSAGE_MARKERS = ("throttl", "too many tokens", "rate exceeded")


def _boto3():
    # Allow tests to monkeypatch module-level `boto3` symbol.
    return globals().get("boto3") or importlib.import_module("boto3")


def _client_config(timeout: float | None = None) -> Config:
    # One network attempt per invoke; the engine owns retries and backoff.
    kw: dict[str, Any] = {"retries": {"total_max_attempts": 1}}
    if timeout:
        kw.update(read_timeout=timeout, connect_timeout=timeout)
    return Config(**kw)


def _bedrock_client(region: str | None = None, timeout: float | None = None):
    kw: dict[str, Any] = {"config": _client_config(timeout)}
    if region:
        kw["region_name"] = region
    return _boto3().client("bedrock-runtime", **kw)


def _error_code(exc: Exception) -> str | None:
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        return (response.get("Error") or {}).get("Code")
    return None


def translate_error(exc: Exception) -> TransientInferenceError | FatalInferenceError:
    """Map a provider/SDK exception onto the two retry classes."""
    code = _error_code(exc) or ""
    message = str(exc)
    if (
        code in TRANSIENT_ERROR_CODES
        or type(exc).__name__ in TRANSIENT_ERROR_TYPES
        or any(m in message.lower() for m in _TRANSIENT_MESSAGE_MARKERS)
    ):
        return TransientInferenceError(f"{code or type(exc).__name__}: {message}")
    return FatalInferenceError(f"{code or type(exc).__name__}: {message}")


class InferenceAdapter(Protocol):
    def invoke(self, model_id: str, prompt: str, max_tokens: int, temperature: float) -> str:
        ...


class _BedrockAdapter:
    def __init__(
        self, region: str | None = None, client: Any = None, timeout: float | None = None
    ) -> None:
        self.region = region
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = _bedrock_client(self.region, self.timeout)
        return self._client

    def _body(self, prompt: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        raise NotImplementedError

    def _text(self, data: dict[str, Any]) -> str:
        raise NotImplementedError

    def invoke(self, model_id: str, prompt: str, max_tokens: int, temperature: float) -> str:
        body = self._body(prompt, max_tokens, temperature)
        try:
            resp = self.client.invoke_model(
                modelId=model_id,
                body=json.dumps(body),
                accept="application/json",
                contentType="application/json",
            )
            raw = resp["body"].read()
        except Exception as e:
            raise translate_error(e) from e
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise FatalInferenceError(f"response body is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise FatalInferenceError("response body is not a JSON object")
        return self._text(data) or ""


class LlamaBedrockAdapter(_BedrockAdapter):
    """Meta Llama instruct models (prompt template + `generation`)."""

    top_p = 0.9

    def _body(self, prompt: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        return {
            "prompt": (
                "<|begin_of_text|><|start_header_id|>user<|end_header_id|>\n\n"
                f"{prompt}<|eot_id|><|start_header_id|>assistant<|end_header_id|>\n\n"
            ),
            "max_gen_len": max_tokens,
            "temperature": temperature,
            "top_p": self.top_p,
        }

    def _text(self, data: dict[str, Any]) -> str:
        if data.get("generation") is not None:
            return str(data["generation"])
        choices = data.get("choices") or [{}]
        return ((choices[0] or {}).get("message") or {}).get("content") or ""


class ClaudeBedrockAdapter(_BedrockAdapter):
    """Anthropic Messages API on Bedrock (anthropic_version=bedrock-2023-05-31)."""

    def _body(self, prompt: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        return {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        }

    def _text(self, data: dict[str, Any]) -> str:
        # Anthropic messages returns { content: [{text: "..."}]} on Bedrock
        return (data.get("content") or [{}])[0].get("text", "")


def adapter_for_model(
    model_id: str, region: str | None = None, timeout: float | None = None
) -> InferenceAdapter:
    family = model_id.lower()
    # Cross-region inference profiles prefix the family (us.meta..., eu.anthropic...).
    if "anthropic." in family:
        return ClaudeBedrockAdapter(region, timeout=timeout)
    if "meta." in family:
        return LlamaBedrockAdapter(region, timeout=timeout)
    raise FatalInferenceError(f"unsupported model family: {model_id}")
