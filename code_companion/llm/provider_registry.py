from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from .gemini_llm import GeminiLLM
from .mistral_llm import MistralLLM
from .provider import LLMProvider, LLMProviderConfigurationError, ProviderFactory

logger = logging.getLogger(__name__)


def _gemini_factory(
    *,
    system_prompt: str | Path,
    filter_json: bool,
    dotenv_path: str | Path | None,
) -> LLMProvider:
    return GeminiLLM(
        system_prompt=system_prompt,
        filter_json=filter_json,
        dotenv_path=dotenv_path,
    )


def _mistral_factory(
    *,
    system_prompt: str | Path,
    filter_json: bool,
    dotenv_path: str | Path | None,
) -> LLMProvider:
    return MistralLLM(
        system_prompt=system_prompt,
        filter_json=filter_json,
        dotenv_path=dotenv_path,
    )


_PROVIDER_FACTORIES: dict[str, ProviderFactory] = {
    "gemini": _gemini_factory,
    "mistral": _mistral_factory,
}


def available_providers() -> list[str]:
    return list(_PROVIDER_FACTORIES)


def _split_names(value: str | None) -> list[str]:
    if not value:
        return []
    return [chunk.strip().lower() for chunk in value.split(",") if chunk.strip()]


def resolve_provider_order(
    primary: str | None = None,
    fallbacks: Sequence[str] | None = None,
) -> list[str]:
    """Return de-duplicated provider names in priority order.

    Explicit arguments win over ``LLM_PRIMARY``/``LLM_FALLBACK``; with neither,
    every registered provider is used in registration order.

    Raises:
        ValueError: If a name is not a registered provider
    """
    candidates: list[str] = []
    if primary:
        candidates.extend(_split_names(primary))
    else:
        candidates.extend(_split_names(os.environ.get("LLM_PRIMARY")))

    if fallbacks:
        candidates.extend(name.strip().lower() for name in fallbacks if name.strip())
    else:
        candidates.extend(_split_names(os.environ.get("LLM_FALLBACK")))

    if not candidates:
        candidates = list(_PROVIDER_FACTORIES.keys())

    order: list[str] = []
    for name in candidates:
        if name in order:
            continue
        if name not in _PROVIDER_FACTORIES:
            raise ValueError(f"Unknown LLM provider '{name}'")
        order.append(name)
    return order


def create_provider_chain(
    *,
    system_prompt: str | Path,
    filter_json: bool = False,
    dotenv_path: str | Path | None = None,
    primary: str | None = None,
    fallbacks: Sequence[str] | None = None,
    skip_unconfigured: bool = False,
) -> list[LLMProvider]:
    """Return configured providers honoring environment/priority hints.

    With ``skip_unconfigured`` a provider whose credentials are missing is
    left out of the chain instead of aborting it, as long as one remains.
    """

    # Load the .env first so LLM_PRIMARY/LLM_FALLBACK are visible below
    if dotenv_path is not None:
        load_dotenv(dotenv_path=str(dotenv_path), override=True)

    providers: list[LLMProvider] = []
    last_error: LLMProviderConfigurationError | None = None
    for name in resolve_provider_order(primary, fallbacks):
        try:
            providers.append(
                _PROVIDER_FACTORIES[name](
                    system_prompt=system_prompt,
                    filter_json=filter_json,
                    dotenv_path=dotenv_path,
                )
            )
        except LLMProviderConfigurationError as exc:
            if not skip_unconfigured:
                raise
            logger.warning("Skipping provider %s: %s", name, exc)
            last_error = exc

    if not providers and last_error is not None:
        raise LLMProviderConfigurationError("No LLM provider is configured") from last_error
    return providers
