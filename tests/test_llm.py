import json
import types

import pytest

import todo_ai.llm as llm
from todo_ai.errors import FatalInferenceError, TransientInferenceError


class FakeClientError(Exception):
    def __init__(self, code: str, message: str = "boom"):
        super().__init__(f"An error occurred ({code}): {message}")
        self.response = {"Error": {"Code": code, "Message": message}}


class EndpointConnectionError(Exception):
    pass


class FakeBedrock:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    def invoke_model(self, modelId: str, body: str, accept: str, contentType: str):
        self.calls.append({"modelId": modelId, "body": json.loads(body)})
        if self.error:
            raise self.error
        return {
            "body": types.SimpleNamespace(read=lambda: json.dumps(self.payload).encode("utf-8"))
        }


def _install(monkeypatch, bedrock):
    seen = {}

    class BotoModule:
        def client(self, name: str, **kw):
            seen["name"] = name
            seen.update(kw)
            if name == "bedrock-runtime":
                return bedrock
            raise ValueError(name)

    monkeypatch.setitem(llm.__dict__, "boto3", BotoModule())
    return seen


def test_llama_adapter_builds_prompt_and_reads_generation(monkeypatch):
    br = FakeBedrock(payload={"generation": '{"category": "Work"}'})
    seen = _install(monkeypatch, br)

    out = llm.LlamaBedrockAdapter("us-east-2").invoke("us.meta.llama3-2-1b-instruct-v1:0", "hi", 200, 0.7)

    assert out == '{"category": "Work"}'
    assert (seen["name"], seen["region_name"]) == ("bedrock-runtime", "us-east-2")
    assert seen["config"].retries == {"total_max_attempts": 1}
    body = br.calls[0]["body"]
    assert body["max_gen_len"] == 200
    assert body["temperature"] == 0.7
    assert "<|start_header_id|>user<|end_header_id|>\n\nhi<|eot_id|>" in body["prompt"]


def test_llama_adapter_reads_chat_choices(monkeypatch):
    br = FakeBedrock(payload={"choices": [{"message": {"content": "OK"}}]})
    _install(monkeypatch, br)
    assert llm.LlamaBedrockAdapter().invoke("meta.llama3", "hi", 10, 0.0) == "OK"


def test_claude_adapter_messages_body(monkeypatch):
    br = FakeBedrock(payload={"content": [{"text": "OK"}]})
    _install(monkeypatch, br)

    out = llm.ClaudeBedrockAdapter().invoke("anthropic.claude-3-haiku-20240307-v1:0", "hi", 100, 0.2)

    assert out == "OK"
    body = br.calls[0]["body"]
    assert body["anthropic_version"] == "bedrock-2023-05-31"
    assert body["max_tokens"] == 100
    assert body["messages"][0]["content"][0]["text"] == "hi"


@pytest.mark.parametrize(
    "error",
    [
        FakeClientError("ThrottlingException"),
        FakeClientError("ServiceUnavailableException"),
        FakeClientError("ValidationException", "Too many tokens, please wait"),
        EndpointConnectionError("could not connect"),
    ],
)
def test_transient_errors_translated(monkeypatch, error):
    _install(monkeypatch, FakeBedrock(error=error))
    with pytest.raises(TransientInferenceError):
        llm.LlamaBedrockAdapter().invoke("meta.llama3", "hi", 10, 0.0)


@pytest.mark.parametrize(
    "error",
    [
        FakeClientError("AccessDeniedException"),
        FakeClientError("ValidationException", "model identifier is invalid"),
        RuntimeError("bedrock down"),
    ],
)
def test_fatal_errors_translated(monkeypatch, error):
    _install(monkeypatch, FakeBedrock(error=error))
    with pytest.raises(FatalInferenceError):
        llm.LlamaBedrockAdapter().invoke("meta.llama3", "hi", 10, 0.0)


def test_non_json_body_is_fatal(monkeypatch):
    class BR:
        def invoke_model(self, **_kw):
            return {"body": types.SimpleNamespace(read=lambda: b"<html>")}

    _install(monkeypatch, BR())
    with pytest.raises(FatalInferenceError):
        llm.ClaudeBedrockAdapter().invoke("anthropic.claude", "hi", 10, 0.0)


def test_adapter_for_model():
    assert isinstance(llm.adapter_for_model("us.meta.llama3-2-1b-instruct-v1:0"), llm.LlamaBedrockAdapter)
    assert isinstance(
        llm.adapter_for_model("anthropic.claude-3-haiku-20240307-v1:0"), llm.ClaudeBedrockAdapter
    )
    with pytest.raises(FatalInferenceError):
        llm.adapter_for_model("amazon.titan-text-express-v1")


def test_client_timeouts_follow_attempt_timeout(monkeypatch):
    br = FakeBedrock(payload={"generation": "OK"})
    seen = _install(monkeypatch, br)

    adapter = llm.adapter_for_model("us.meta.llama3-2-1b-instruct-v1:0", "us-east-2", timeout=7)
    adapter.invoke("us.meta.llama3-2-1b-instruct-v1:0", "hi", 10, 0.0)

    config = seen["config"]
    assert (config.read_timeout, config.connect_timeout) == (7, 7)
    assert config.retries == {"total_max_attempts": 1}
