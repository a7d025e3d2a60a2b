from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Protocol, Sequence

ProviderReporter = Callable[[str, "ProviderStatus", Exception | None], None]


class ProviderStatus(str, Enum):
    """Status used when reporting the outcome of a provider call."""

    SUCCESS = "success"
    QUOTA = "quota"
    FAILURE = "failure"


class LLMProviderError(Exception):
    """Generic failure raised by an LLM provider."""


class LLMQuotaError(LLMProviderError):
    """Raised when a provider reports quota or rate-limit exhaustion."""


class LLMProviderConfigurationError(LLMProviderError):
    """Raised when a provider cannot be configured or authenticated."""


class LLMParseError(LLMProviderError):
    """Raised when an LLM response cannot be parsed as expected.

    This exception includes the raw response text and input prompts
    to aid debugging when the LLM returns unexpected content.
    """

    def __init__(
        self,
        message: str,
        *,
        response_text: str | None = None,
        prompts: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.response_text = response_text
        self.prompts = prompts

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.response_text is not None:
            # Truncate very long responses for readability
            text = self.response_text
            if len(text) > 2000:
                text = text[:2000] + "... [truncated]"
            parts.append(f"\n--- LLM Response ---\n{text}")
        if self.prompts:
            prompt_text = "\n".join(self.prompts)
            if len(prompt_text) > 2000:
                prompt_text = prompt_text[:2000] + "... [truncated]"
            parts.append(f"\n--- Input Prompts ---\n{prompt_text}")
        return "".join(parts)


class LLMProvider(Protocol):
    """Shared contract for LLM providers."""

    name: str

    def generate(
        self,
        user_prompts: Sequence[str],
        *,
        filter_json: bool = False,
    ) -> Any:
        """Return the response text, or the parsed JSON when ``filter_json`` is set."""
        ...

    def generate_stream(self, user_prompts: Sequence[str]) -> AsyncIterator[str]:
        """Yield response text fragments as the model produces them."""
        ...

    def health_check(self) -> bool:
        """Optional quick check that returns True when the provider is ready."""
        ...


class ProviderFactory(Protocol):
    def __call__(
        self,
        *,
        system_prompt: str | Path,
        filter_json: bool,
        dotenv_path: str | Path | None,
    ) -> LLMProvider: ...


def resolve_system_prompt(system_prompt: str | Path) -> str:
    """Accept either a prompt string or a path to a file containing it."""
    if not isinstance(system_prompt, (str, Path)):
        raise TypeError(
            f"system_prompt must be str or Path, got {type(system_prompt)}"
        )

    # Multi-line or long strings are always treated as the prompt itself
    if isinstance(system_prompt, str) and (
        "\n" in system_prompt or len(system_prompt) >= 500
    ):
        return system_prompt

    try:
        prompt_path = Path(system_prompt)
        if prompt_path.exists() and prompt_path.is_file():
            return prompt_path.read_text(encoding="utf-8")
    except (OSError, ValueError):
        pass
    return str(system_prompt)
