from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, AsyncIterator, Sequence, cast

from dotenv import load_dotenv
from mistralai import Mistral, models

from .json_utils import parse_json_response
from .provider import (
    LLMParseError,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
    resolve_system_prompt,
)


class MistralLLM:
    """Wrapper around the Mistral SDK with system instructions.

    The system prompt can be provided either as a string directly or as a Path to a file.
    One-shot requests use ``beta.conversations.start``; streaming uses the
    chat completion stream because conversations do not expose text deltas.
    """

    name = "mistral"
    MODEL = "mistral-large-latest"
    TEMPERATURE = 0.2

    def __init__(
        self,
        system_prompt: str | Path,
        *,
        client: Mistral | None = None,
        dotenv_path: str | Path | None = None,
        filter_json: bool = False,
        model: str | None = None,
    ) -> None:
        self._system_prompt = resolve_system_prompt(system_prompt)

        if dotenv_path is not None:
            # Existing environment values take precedence over the file
            load_dotenv(dotenv_path=Path(dotenv_path))
        else:
            load_dotenv()

        # The SDK does not read MISTRAL_API_KEY on its own
        if client is None:
            api_key = os.environ.get("MISTRAL_API_KEY")
            if not api_key:
                raise LLMProviderConfigurationError(
                    "MISTRAL_API_KEY environment variable is required but not set. "
                    "Please set it in your .env file or environment."
                )
            client = Mistral(api_key=api_key)
        self._client = client

        self._filter_json = filter_json
        self._model = model or os.environ.get("MISTRAL_MODEL") or self.MODEL

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def model(self) -> str:
        return self._model

    def generate(
        self,
        user_prompts: Sequence[str],
        *,
        filter_json: bool | None = None,
    ) -> Any:
        if not user_prompts:
            raise ValueError("user_prompts must not be empty.")

        apply_filter = self._filter_json if filter_json is None else filter_json

        inputs = cast(
            models.ConversationInputs,
            [
                models.MessageInputEntry(
                    role="user",
                    content="\n".join(user_prompts),
                )
            ],
        )

        try:
            response = self._client.beta.conversations.start(
                inputs=inputs,
                instructions=self._system_prompt,
                model=self._model,
                completion_args={"temperature": self.TEMPERATURE},
                tools=[],
            )
        except Exception as exc:
            translated = self._translate_error(exc)
            if translated is None:
                raise
            raise translated from exc

        text = self._response_text(response)
        if text is None:
            raise LLMParseError(
                "Mistral response has no text content; expected `outputs` or `choices` shapes.",
                response_text=str(response),
                prompts=list(user_prompts),
            )
        if not apply_filter:
            return text

        try:
            return parse_json_response(text)
        except (ValueError, json.JSONDecodeError) as exc:
            raise LLMParseError(
                str(exc),
                response_text=text,
                prompts=list(user_prompts),
            ) from exc

    async def generate_stream(self, user_prompts: Sequence[str]) -> AsyncIterator[str]:
        if not user_prompts:
            raise ValueError("user_prompts must not be empty.")

        messages = [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": "\n".join(user_prompts)},
        ]
        try:
            stream = await self._client.chat.stream_async(
                model=self._model,
                messages=messages,
                temperature=self.TEMPERATURE,
            )
            async for event in stream:
                choices = getattr(event.data, "choices", None) or []
                if not choices:
                    continue
                delta = getattr(choices[0].delta, "content", None)
                if isinstance(delta, str) and delta:
                    yield delta
        except Exception as exc:
            translated = self._translate_error(exc)
            if translated is None:
                raise
            raise translated from exc

    def health_check(self) -> bool:
        return True

    @staticmethod
    def _response_text(response: Any) -> str | None:
        # beta.conversations.start returns `outputs` entries with string content;
        # chat.complete returns `choices[0].message.content`.
        outputs = getattr(response, "outputs", None)
        if isinstance(outputs, list):
            for entry in outputs:
                if isinstance(entry, dict):
                    content = entry.get("content")
                else:
                    content = getattr(entry, "content", None)
                if isinstance(content, str) and content.strip():
                    return content

        choices = getattr(response, "choices", None)
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)
            if isinstance(content, str):
                return content
        return None

    @staticmethod
    def _translate_error(exc: Exception) -> LLMProviderError | None:
        if isinstance(exc, LLMProviderError):
            return None
        status_code = getattr(exc, "status_code", None)
        if status_code == 429:
            return LLMQuotaError("Mistral provider: quota exhausted or rate limited")
        if status_code is not None:
            return LLMProviderError(
                f"Mistral provider: request failed ({status_code}): {exc}"
            )
        # Not an SDK/HTTP failure; the original error surfaces unchanged
        return None
