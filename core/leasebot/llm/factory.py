"""Factory for building LLM clients based on model specifications."""

from __future__ import annotations

from typing import Any

from leasebot.config import Config
from leasebot.llm.base import LLMClient
from leasebot.llm.exceptions import LLMConfigError
from leasebot.llm.types import ModelSpec

from leasebot.llm.providers.anthropic_client import AnthropicLLMClient


_PROVIDER_MAP: dict[str, type[LLMClient]] = {
    "anthropic": AnthropicLLMClient,
}


def build_client(model_spec: ModelSpec, api_key: str, **kwargs: Any) -> LLMClient:
    """
    Build an LLM client for a given ModelSpec.

    Args:
        model_spec: Model configuration.
        api_key: Provider credential.
        **kwargs: Provider-specific constructor options (e.g. ``timeout_s``).

    Returns:
        LLMClient instance.

    Raises:
        LLMConfigError: If provider is unknown.
    """
    cls = _PROVIDER_MAP.get(model_spec.provider)
    if not cls:
        raise LLMConfigError(f"Unknown LLM provider: {model_spec.provider}")
    return cls(model_spec, api_key, **kwargs)  # type: ignore[call-arg]


def model_spec_from_config(config: Config) -> ModelSpec:
    """Build the ModelSpec described by the configuration.

    Args:
        config: Runtime configuration.

    Returns:
        ModelSpec for the configured provider and model.
    """
    return ModelSpec(
        provider=config.LLM_PROVIDER,
        model=config.LLM_MODEL,
        base_url=config.ANTHROPIC_API_URL or None,
    )
