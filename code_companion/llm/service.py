from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Sequence

from .provider import (
    LLMProvider,
    LLMProviderError,
    LLMQuotaError,
    ProviderReporter,
    ProviderStatus,
)

logger = logging.getLogger(__name__)


class LLMService:
    """Facade that routes LLM requests across a priority-ordered provider list.

    Providers are tried in order and the first success wins. Any
    :class:`LLMProviderError` moves on to the next provider; when every
    provider has failed the last error is re-raised as the cause.
    """

    def __init__(
        self,
        providers: Sequence[LLMProvider],
        *,
        reporter: ProviderReporter | None = None,
    ) -> None:
        if not providers:
            raise ValueError("LLMService needs at least one provider")
        self._providers = list(providers)
        self._reporter = reporter

    def provider_order(self) -> list[str]:
        """Return the provider names in configured order."""

        return [provider.name for provider in self._providers]

    def health_check(self) -> list[tuple[str, bool]]:
        """Run the optional health check for every provider."""

        return [(provider.name, provider.health_check()) for provider in self._providers]

    def generate(
        self,
        user_prompts: Sequence[str],
        *,
        filter_json: bool = False,
    ) -> Any:
        """Try each provider until one succeeds."""

        last_error: LLMProviderError | None = None
        for provider in self._providers:
            try:
                value = provider.generate(user_prompts, filter_json=filter_json)
            except LLMProviderError as exc:
                last_error = exc
                self._report_failure(provider.name, exc)
                continue
            self._report(provider.name, ProviderStatus.SUCCESS)
            return value
        raise self._exhausted(last_error) from last_error

    async def generate_stream(self, user_prompts: Sequence[str]) -> AsyncIterator[str]:
        """Stream from the first provider that starts producing text.

        A provider is only abandoned for the next one while it has not yielded
        anything; once fragments have reached the caller a failure is raised
        as-is, since replaying from another model would duplicate output.
        """

        last_error: LLMProviderError | None = None
        for provider in self._providers:
            started = False
            try:
                async for fragment in provider.generate_stream(user_prompts):
                    started = True
                    yield fragment
            except LLMProviderError as exc:
                self._report_failure(provider.name, exc)
                if started:
                    raise
                last_error = exc
                continue
            self._report(provider.name, ProviderStatus.SUCCESS)
            return
        raise self._exhausted(last_error) from last_error

    def _exhausted(self, last_error: LLMProviderError | None) -> LLMProviderError:
        if isinstance(last_error, LLMQuotaError):
            return LLMQuotaError("All providers exceeded quota")
        return LLMProviderError("All providers failed")

    def _report_failure(self, provider_name: str, exc: LLMProviderError) -> None:
        status = (
            ProviderStatus.QUOTA if isinstance(exc, LLMQuotaError) else ProviderStatus.FAILURE
        )
        logger.warning("Provider %s failed (%s): %s", provider_name, status.value, exc)
        self._report(provider_name, status, exc)

    def _report(
        self,
        provider_name: str,
        status: ProviderStatus,
        error: Exception | None = None,
    ) -> None:
        if self._reporter is None:
            return
        self._reporter(provider_name, status, error)
