"""
LLM Factory
Build the configured LLM instance.
"""
from typing import Optional
import logging

from config.settings import LLMSettings
from utils.exceptions import ConfigurationError

from .base import BaseLLM
from .openai_llm import OpenAILLM
from .anthropic_llm import AnthropicLLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20240620",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[LLMSettings] = None,
    **kwargs,
) -> BaseLLM:
    """
    Create an LLM instance.

    Reads LLM_* settings (.env supported); explicit arguments win.

    Args:
        provider: anthropic or openai
        model: model name (provider default when omitted)
        settings: LLM settings (global settings when omitted)
        **kwargs: extra parameters (temperature, max_tokens, timeout, base_url ...)

    Example:
        llm = get_llm()
        llm = get_llm(provider="openai", model="gpt-4o-mini")
    """
    if settings is None:
        from config import get_llm_settings
        settings = get_llm_settings()

    provider = str(provider or settings.provider or "").strip().lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "timeout": settings.timeout,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    if provider == "openai":
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None),
            **kwargs,
        )
    elif provider == "anthropic":
        return AnthropicLLM(
            model=model,
            api_key=api_key,
            **kwargs,
        )
    else:
        raise ConfigurationError(f"Unsupported LLM provider: {provider}", {"supported": sorted(DEFAULT_MODELS)})
