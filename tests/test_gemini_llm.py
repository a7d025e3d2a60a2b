from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, AsyncIterator, cast

import pytest
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from code_companion.llm.gemini_llm import GeminiLLM
from code_companion.llm.provider import (
    LLMParseError,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
)


def _api_error(code: int) -> genai_errors.APIError:
    return genai_errors.ClientError(
        code,
        {"error": {"code": code, "message": "mock failure", "status": "MOCK"}},
    )


class _DummyResponse:
    def __init__(self, text: Any) -> None:
        self.text = text


class _DummyModels:
    def __init__(self, response_text: Any = "mock-response", errors: list[Exception] | None = None) -> None:
        self.calls: list[dict[str, object]] = []
        self._response_text = response_text
        self._errors = list(errors or [])

    def generate_content(self, **kwargs: object) -> _DummyResponse:
        self.calls.append(kwargs)
        if self._errors:
            raise self._errors.pop(0)
        return _DummyResponse(text=self._response_text)


class _DummyAsyncModels:
    def __init__(self, chunks: list[Any], error: Exception | None = None) -> None:
        self.calls: list[dict[str, object]] = []
        self._chunks = chunks
        self._error = error

    async def generate_content_stream(self, **kwargs: object) -> AsyncIterator[_DummyResponse]:
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error

        async def _iterate() -> AsyncIterator[_DummyResponse]:
            for chunk in self._chunks:
                yield _DummyResponse(text=chunk)

        return _iterate()


class _DummyAio:
    def __init__(self, models: _DummyAsyncModels) -> None:
        self.models = models


class _DummyClient:
    def __init__(
        self,
        response_text: Any = "mock-response",
        *,
        errors: list[Exception] | None = None,
        stream_chunks: list[Any] | None = None,
        stream_error: Exception | None = None,
    ) -> None:
        self.models = _DummyModels(response_text=response_text, errors=errors)
        self.aio = _DummyAio(_DummyAsyncModels(stream_chunks or [], stream_error))


def _llm(client: _DummyClient, **kwargs: Any) -> GeminiLLM:
    return GeminiLLM(system_prompt="System", client=cast(genai.Client, client), **kwargs)


def test_generate_joins_prompts_and_sets_config(tmp_path: Path) -> None:
    system_prompt_path = tmp_path / "system.md"
    system_text = "## System\nReview code carefully."
    system_prompt_path.write_text(system_text, encoding="utf-8")
    client = _DummyClient()
    llm = GeminiLLM(system_prompt=system_prompt_path, client=cast(genai.Client, client))

    result = llm.generate(["Line one", "Line two"])

    assert result == "mock-response"
    assert len(client.models.calls) == 1
    call = client.models.calls[0]
    assert call["model"] == llm.MODEL == "gemini-2.0-flash"
    assert call["contents"] == "Line one\nLine two"
    config = call["config"]
    assert isinstance(config, types.GenerateContentConfig)
    assert config.system_instruction == system_text
    assert config.temperature == llm.TEMPERATURE


def test_model_can_be_overridden_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_MODEL", "gemini-custom")
    client = _DummyClient()

    llm = _llm(client)
    llm.generate(["Prompt"])

    assert llm.model == "gemini-custom"
    assert client.models.calls[0]["model"] == "gemini-custom"


def test_loads_dotenv_when_path_provided(tmp_path: Path) -> None:
    dotenv_path = tmp_path / ".env"
    dotenv_path.write_text("GEMINI_API_KEY=from-dotenv\n", encoding="utf-8")
    previous_value = os.environ.pop("GEMINI_API_KEY", None)

    try:
        _llm(_DummyClient(), dotenv_path=dotenv_path)
        assert os.environ["GEMINI_API_KEY"] == "from-dotenv"
    finally:
        if previous_value is None:
            os.environ.pop("GEMINI_API_KEY", None)
        else:
            os.environ["GEMINI_API_KEY"] = previous_value


def test_missing_api_key_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _no_key(*args: object, **kwargs: object) -> None:
        raise ValueError("Missing key inputs argument!")

    monkeypatch.setattr("code_companion.llm.gemini_llm.load_dotenv", lambda *a, **k: None)
    monkeypatch.setattr("code_companion.llm.gemini_llm.genai.Client", _no_key)

    with pytest.raises(LLMProviderConfigurationError, match="GEMINI_API_KEY"):
        GeminiLLM(system_prompt="System")


def test_generate_returns_repaired_json_when_filter_enabled() -> None:
    client = _DummyClient(response_text='Noise before {"summary": "ok",} and after')

    assert _llm(client, filter_json=True).generate(["Prompt"]) == {"summary": "ok"}


def test_per_call_filter_overrides_instance_default() -> None:
    client = _DummyClient(response_text='{"a": 1}')

    assert _llm(client).generate(["Prompt"], filter_json=True) == {"a": 1}
    assert _llm(client, filter_json=True).generate(["Prompt"], filter_json=False) == '{"a": 1}'


def test_generate_raises_when_json_delimiters_missing() -> None:
    client = _DummyClient(response_text="No JSON here")

    with pytest.raises(LLMParseError) as exc_info:
        _llm(client, filter_json=True).generate(["Prompt"])

    assert exc_info.value.response_text == "No JSON here"
    assert exc_info.value.prompts == ["Prompt"]


def test_generate_raises_when_response_has_no_text() -> None:
    with pytest.raises(LLMParseError) as exc_info:
        _llm(_DummyClient(response_text=None)).generate(["Prompt"])

    assert exc_info.value.prompts == ["Prompt"]


def test_generate_rejects_empty_prompts() -> None:
    with pytest.raises(ValueError):
        _llm(_DummyClient()).generate([])


def test_quota_error_is_translated() -> None:
    client = _DummyClient(errors=[_api_error(429)])

    with pytest.raises(LLMQuotaError):
        _llm(client, max_retries=0).generate(["Prompt"])


def test_other_api_errors_become_provider_errors() -> None:
    client = _DummyClient(errors=[_api_error(400)])

    with pytest.raises(LLMProviderError) as exc_info:
        _llm(client).generate(["Prompt"])

    assert not isinstance(exc_info.value, LLMQuotaError)
    assert isinstance(exc_info.value.__cause__, genai_errors.APIError)


def test_rate_limited_request_is_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr("code_companion.llm.gemini_llm.time.sleep", sleeps.append)
    client = _DummyClient(errors=[_api_error(429), _api_error(429)])

    result = _llm(client, max_retries=2, min_request_interval=0).generate(["Prompt"])

    assert result == "mock-response"
    assert len(client.models.calls) == 3
    assert sleeps == [0.1, 0.2]


def test_generate_stream_yields_text_chunks() -> None:
    client = _DummyClient(stream_chunks=["Hello", None, "", " world"])
    llm = _llm(client)

    async def collect() -> list[str]:
        return [chunk async for chunk in llm.generate_stream(["Prompt"])]

    assert asyncio.run(collect()) == ["Hello", " world"]
    call = client.aio.models.calls[0]
    assert call["contents"] == "Prompt"
    assert isinstance(call["config"], types.GenerateContentConfig)


def test_generate_stream_translates_errors() -> None:
    llm = _llm(_DummyClient(stream_error=_api_error(429)))

    async def collect() -> list[str]:
        return [chunk async for chunk in llm.generate_stream(["Prompt"])]

    with pytest.raises(LLMQuotaError):
        asyncio.run(collect())


def test_generate_stream_respects_min_request_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    delays: list[float] = []

    async def _record_sleep(delay: float) -> None:
        delays.append(delay)

    # Only the module's own reference is replaced; the event loop keeps the real asyncio
    monkeypatch.setattr(
        "code_companion.llm.gemini_llm.asyncio", SimpleNamespace(sleep=_record_sleep)
    )
    llm = _llm(_DummyClient(stream_chunks=["chunk"]), min_request_interval=5.0)

    async def collect() -> list[str]:
        return [chunk async for chunk in llm.generate_stream(["Prompt"])]

    assert asyncio.run(collect()) == ["chunk"]
    assert asyncio.run(collect()) == ["chunk"]

    assert len(delays) == 1
    assert 4.0 < delays[0] <= 5.0
