from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

from dotenv import load_dotenv
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .json_utils import parse_json_response
from .provider import (
    LLMParseError,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
    resolve_system_prompt,
)

logger = logging.getLogger(__name__)


def _read_int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _read_float_env(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except ValueError:
        return default


class GeminiLLM:
    """Wrapper around the Gemini SDK with system instructions.

    The system prompt can be provided either as a string directly or as a Path to a file.
    The API key is read by the SDK from ``GEMINI_API_KEY`` / ``GOOGLE_API_KEY``.
    """

    name = "gemini"
    MODEL = "gemini-2.0-flash"
    TEMPERATURE = 0.2

    def __init__(
        self,
        system_prompt: str | Path,
        *,
        client: genai.Client | None = None,
        dotenv_path: str | Path | None = None,
        filter_json: bool = False,
        model: str | None = None,
        min_request_interval: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._system_prompt = resolve_system_prompt(system_prompt)

        if dotenv_path is not None:
            load_dotenv(dotenv_path=Path(dotenv_path))
        else:
            load_dotenv()

        if client is None:
            try:
                client = genai.Client()
            except ValueError as exc:
                raise LLMProviderConfigurationError(
                    "Gemini provider: GEMINI_API_KEY (or GOOGLE_API_KEY) is not set"
                ) from exc
        self._client = client
        self._filter_json = filter_json
        self._model = model or os.environ.get("GEMINI_MODEL") or self.MODEL

        if min_request_interval is None:
            min_request_interval = _read_float_env("GEMINI_MIN_REQUEST_INTERVAL", 0.0)
        self._min_request_interval = max(0.0, min_request_interval)

        if max_retries is None:
            max_retries = _read_int_env("GEMINI_MAX_RETRIES", 0)
        self._max_retries = max(0, max_retries)

        # 0 so the first request is never delayed
        self._last_request_time = 0.0

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def model(self) -> str:
        return self._model

    def _build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=self._system_prompt,
            temperature=self.TEMPERATURE,
        )

    def generate(
        self,
        user_prompts: Sequence[str],
        *,
        filter_json: bool | None = None,
    ) -> Any:
        if not user_prompts:
            raise ValueError("user_prompts must not be empty.")

        apply_filter = self._filter_json if filter_json is None else filter_json
        contents = "\n".join(user_prompts)
        config = self._build_config()

        for attempt in range(self._max_retries + 1):
            self._enforce_rate_limit()
            try:
                response = self._client.models.generate_content(
                    model=self._model,
                    contents=contents,
                    config=config,
                )
            except genai_errors.APIError as exc:
                self._last_request_time = time.time()
                if exc.code == 429 and attempt < self._max_retries:
                    # Backoff: min_interval * 2^attempt, with a small floor
                    base = self._min_request_interval or 0.1
                    delay = base * (2**attempt)
                    logger.warning(
                        "Gemini rate limited (attempt %d); retrying in %.1fs",
                        attempt + 1,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise self._translate_error(exc) from exc

            self._last_request_time = time.time()
            text = getattr(response, "text", None)
            if not isinstance(text, str):
                raise LLMParseError(
                    "Gemini response does not expose any text.",
                    response_text=str(response),
                    prompts=list(user_prompts),
                )
            if not apply_filter:
                return text
            return self._parse_json(text, prompts=list(user_prompts))

        raise LLMQuotaError("Gemini provider: rate limited (exhausted retries)")

    async def generate_stream(self, user_prompts: Sequence[str]) -> AsyncIterator[str]:
        if not user_prompts:
            raise ValueError("user_prompts must not be empty.")

        await self._enforce_rate_limit_async()
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self._model,
                contents="\n".join(user_prompts),
                config=self._build_config(),
            )
            async for chunk in stream:
                text = getattr(chunk, "text", None)
                if text:
                    yield text
        except genai_errors.APIError as exc:
            raise self._translate_error(exc) from exc
        finally:
            self._last_request_time = time.time()

    def health_check(self) -> bool:
        return True

    def _translate_error(self, exc: genai_errors.APIError) -> LLMProviderError:
        if exc.code == 429:
            return LLMQuotaError("Gemini provider: quota exhausted or rate limited")
        return LLMProviderError(f"Gemini provider: request failed ({exc.code}): {exc}")

    def _parse_json(self, text: str, prompts: list[str] | None = None) -> Any:
        try:
            return parse_json_response(text)
        except (ValueError, json.JSONDecodeError) as exc:
            raise LLMParseError(
                str(exc),
                response_text=text,
                prompts=prompts,
            ) from exc

    def _rate_limit_delay(self) -> float:
        if self._min_request_interval <= 0:
            return 0.0
        elapsed = time.time() - self._last_request_time
        return max(0.0, self._min_request_interval - elapsed)

    def _enforce_rate_limit(self) -> None:
        """Enforce minimum interval between API requests."""
        delay = self._rate_limit_delay()
        if delay > 0:
            time.sleep(delay)

    async def _enforce_rate_limit_async(self) -> None:
        """Same as :meth:`_enforce_rate_limit` without blocking the event loop."""
        delay = self._rate_limit_delay()
        if delay > 0:
            await asyncio.sleep(delay)
