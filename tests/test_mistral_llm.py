from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, AsyncIterator, cast

import pytest
from mistralai import Mistral

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from code_companion.llm.mistral_llm import MistralLLM
from code_companion.llm.provider import (
    LLMParseError,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
)


class _DummyMessage:
    def __init__(self, content: Any) -> None:
        self.content = content


class _DummyChoice:
    def __init__(self, message: _DummyMessage) -> None:
        self.message = message
        self.finish_reason = "stop"


class _DummyResponse:
    def __init__(self, content: Any) -> None:
        self.choices = [_DummyChoice(_DummyMessage(content))]


class _HttpError(Exception):
    """Mimics SDK errors, which carry the HTTP status code."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class _Conversations:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.calls: list[dict[str, object]] = []
        self._response = response if response is not None else _DummyResponse("mock-response")
        self._error = error

    def start(self, **kwargs: object) -> Any:
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._response


def _stream_event(content: Any) -> SimpleNamespace:
    delta = SimpleNamespace(content=content)
    return SimpleNamespace(data=SimpleNamespace(choices=[SimpleNamespace(delta=delta)]))


class _Chat:
    def __init__(self, deltas: list[Any], error: Exception | None = None, fail_after: bool = False) -> None:
        self.calls: list[dict[str, object]] = []
        self._deltas = deltas
        self._error = error
        self._fail_after = fail_after

    async def stream_async(self, **kwargs: object) -> AsyncIterator[SimpleNamespace]:
        self.calls.append(kwargs)
        if self._error is not None and not self._fail_after:
            raise self._error

        async def _iterate() -> AsyncIterator[SimpleNamespace]:
            for delta in self._deltas:
                yield _stream_event(delta)
            yield SimpleNamespace(data=SimpleNamespace(choices=[]))
            if self._error is not None:
                raise self._error

        return _iterate()


class _DummyClient:
    def __init__(
        self,
        response: Any = None,
        *,
        error: Exception | None = None,
        deltas: list[Any] | None = None,
        stream_error: Exception | None = None,
        fail_after: bool = False,
    ) -> None:
        self.beta = SimpleNamespace(conversations=_Conversations(response, error))
        self.chat = _Chat(deltas or [], stream_error, fail_after)


def _llm(client: _DummyClient, **kwargs: Any) -> MistralLLM:
    return MistralLLM(system_prompt="System", client=cast(Mistral, client), **kwargs)


def test_generate_uses_conversations_api(tmp_path: Path) -> None:
    system_prompt_path = tmp_path / "system.md"
    system_text = "## System\nReview code carefully."
    system_prompt_path.write_text(system_text, encoding="utf-8")
    client = _DummyClient()
    llm = MistralLLM(system_prompt=system_prompt_path, client=cast(Mistral, client))

    result = llm.generate(["Line one", "Line two"])

    assert result == "mock-response"
    call = client.beta.conversations.calls[0]
    assert call["model"] == llm.MODEL
    assert call["instructions"] == system_text
    first_input = cast(list, call["inputs"])[0]
    assert getattr(first_input, "role") == "user"
    assert getattr(first_input, "content") == "Line one\nLine two"
    assert cast(dict, call["completion_args"])["temperature"] == 0.2


def test_mistral_api_key_is_passed_to_sdk_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MISTRAL_API_KEY", "env-test-key-123")
    captured: dict[str, object] = {}

    class FakeClient:
        def __init__(self, api_key: str | None = None, **kwargs: object) -> None:
            captured["api_key"] = api_key

    monkeypatch.setattr("code_companion.llm.mistral_llm.Mistral", FakeClient)

    MistralLLM(system_prompt="test")

    assert captured.get("api_key") == "env-test-key-123"


def test_mistral_raises_when_api_key_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
    # Prevent the module from re-loading a real .env file
    monkeypatch.setattr("code_companion.llm.mistral_llm.load_dotenv", lambda *args, **kwargs: None)

    with pytest.raises(
        LLMProviderConfigurationError, match="MISTRAL_API_KEY environment variable is required"
    ):
        MistralLLM(system_prompt="test")


def test_generate_returns_repaired_json_when_filter_enabled() -> None:
    client = _DummyClient(_DummyResponse('Noise before {"key": "value",} and after'))

    assert _llm(client, filter_json=True).generate(["Prompt"]) == {"key": "value"}


def test_generate_parses_outputs_shape_with_code_fence() -> None:
    fenced_json = '```json\n{"bugs": [], "summary": "clean",}\n```'
    response = SimpleNamespace(outputs=[SimpleNamespace(content=fenced_json)])

    result = _llm(_DummyClient(response), filter_json=True).generate(["Prompt"])

    assert result == {"bugs": [], "summary": "clean"}


def test_generate_raises_when_response_has_no_content() -> None:
    with pytest.raises(LLMParseError) as exc_info:
        _llm(_DummyClient(_DummyResponse(None))).generate(["Prompt"])

    assert exc_info.value.prompts == ["Prompt"]


def test_generate_raises_quota_error_on_429() -> None:
    client = _DummyClient(error=_HttpError("Rate limit exceeded", 429))

    with pytest.raises(LLMQuotaError):
        _llm(client).generate(["Prompt"])


def test_generate_wraps_other_http_errors() -> None:
    client = _DummyClient(error=_HttpError("Bad gateway", 502))

    with pytest.raises(LLMProviderError, match="502") as exc_info:
        _llm(client).generate(["Prompt"])

    assert not isinstance(exc_info.value, LLMQuotaError)


def test_generate_propagates_non_http_errors_unchanged() -> None:
    client = _DummyClient(error=RuntimeError("bug in caller"))

    with pytest.raises(RuntimeError, match="bug in caller"):
        _llm(client).generate(["Prompt"])


def test_generate_stream_yields_deltas() -> None:
    client = _DummyClient(deltas=["ISSUE", "", None, "_COMPLETE"])
    llm = _llm(client)

    async def collect() -> list[str]:
        return [chunk async for chunk in llm.generate_stream(["Prompt"])]

    assert asyncio.run(collect()) == ["ISSUE", "_COMPLETE"]
    messages = cast(list, client.chat.calls[0]["messages"])
    assert messages[0] == {"role": "system", "content": "System"}
    assert messages[1] == {"role": "user", "content": "Prompt"}


def test_generate_stream_translates_mid_stream_errors() -> None:
    client = _DummyClient(
        deltas=["partial"], stream_error=_HttpError("overloaded", 503), fail_after=True
    )
    llm = _llm(client)
    received: list[str] = []

    async def collect() -> None:
        async for chunk in llm.generate_stream(["Prompt"]):
            received.append(chunk)

    with pytest.raises(LLMProviderError, match="503"):
        asyncio.run(collect())
    assert received == ["partial"]
