"""LLM provider registry and task routing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trustwire.llm.base import BaseLLMProvider

PROVIDERS: dict[str, type[BaseLLMProvider]] = {}


def register_provider(name: str):
    """Decorator to register an LLM provider."""

    def decorator(cls):
        PROVIDERS[name] = cls
        return cls

    return decorator


def build_provider(config: dict, task: str, max_retries: int | None = None) -> BaseLLMProvider:
    """Instantiate the provider configured for ``task``.

    ``max_retries`` overrides the provider setting, for callers that retry
    around the provider themselves.
    """
    from trustwire.config import get_llm_task_config

    task_cfg = get_llm_task_config(config, task)
    provider_type = task_cfg["provider_type"]
    if provider_type not in PROVIDERS:
        raise ValueError(f"Unknown LLM provider type: {provider_type}")
    return PROVIDERS[provider_type](
        api_key=task_cfg["api_key"],
        base_url=task_cfg["base_url"],
        default_model=task_cfg["model"],
        max_retries=task_cfg["max_retries"] if max_retries is None else max_retries,
        timeout=task_cfg["timeout"],
        json_mode=task_cfg["json_mode"],
    )


# Import implementations to trigger registration
from trustwire.llm.anthropic_provider import AnthropicProvider  # noqa: E402, F401
from trustwire.llm.openai_compat import OpenAICompatibleProvider  # noqa: E402, F401
