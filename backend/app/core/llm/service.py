import logging
from typing import Dict, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.llm.base import BaseLLM
from app.core.llm.providers.anthropic import AnthropicProvider
from app.core.llm.providers.openai import OpenAIProvider
from app.core.llm.providers.xai import XaiProvider

logger = logging.getLogger(__name__)


PROVIDER_ALIASES = {
    "grok": "xai",
    "claude": "anthropic",
}

LLM_REGISTRY = {
    "openai": OpenAIProvider,
    "xai": XaiProvider,
    "anthropic": AnthropicProvider,
}

PROVIDER_CONFIG: Dict[str, dict[str, str]] = {
    "openai": {
        "api_key_attr": "OPENAI_API_KEY",
    },
    "xai": {
        "api_key_attr": "XAI_API_KEY",
    },
    "anthropic": {
        "api_key_attr": "ANTHROPIC_API_KEY",
    },
}

# Models known to support function calling.
LLM_MODEL_REGISTRY: Dict[str, list[str]] = {
    "openai": [
        "gpt-5",
        "gpt-5-mini",
        "gpt-5-nano",
        "gpt-4.1",
        "gpt-4.1-mini",
        "gpt-4.1-nano",
        "gpt-4o",
        "gpt-4o-mini",
        "o3-mini",
        "o4-mini",
    ],
    "xai": [
        "grok-4",
        "grok-4-fast-non-reasoning",
        "grok-3",
        "grok-3-mini",
    ],
    "anthropic": [
        "claude-sonnet-4-20250514",
        "claude-3-7-sonnet-20250219",
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
    ],
}


# cache instance per (provider, model)
_instances: Dict[Tuple[str, str], BaseLLM] = {}


def _resolve(group: str, key: str, fallback_attr: str) -> str:
    """Try the admin override for the group first, fall back to settings."""
    try:
        from app.modules.admin.service import resolve_config
        val = resolve_config(group, key)
        if val:
            return val
    except SQLAlchemyError:
        logger.warning("Could not read LLM override for %s.%s, using settings", group, key)
    return str(getattr(settings, fallback_attr, ""))


def _resolve_api_key(provider: str) -> str:
    provider = PROVIDER_ALIASES.get(provider, provider)
    cfg = PROVIDER_CONFIG.get(provider, {})
    attr = cfg.get("api_key_attr", "")
    if attr:
        val = getattr(settings, attr, "")
        if val:
            return str(val)
    return ""


def create_llm(
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
    config_group: str = "llm_assistant",
    use_cache: bool = True,
) -> BaseLLM:

    provider = provider or _resolve(config_group, "provider", "CHATBOT_DEFAULT_LLM")
    provider = PROVIDER_ALIASES.get(provider, provider)
    model = model or _resolve(config_group, "model", "CHATBOT_DEFAULT_MODEL")
    api_key = api_key or _resolve_api_key(provider)

    if provider not in LLM_REGISTRY:
        raise ValueError(f"Unsupported LLM provider: {provider}")
    if not api_key:
        attr = PROVIDER_CONFIG.get(provider, {}).get("api_key_attr", "")
        hint = f" Set {attr} in env." if attr else ""
        raise ValueError(f"Missing API key for provider '{provider}'.{hint}")
    key = (provider, model)

    if use_cache and key in _instances:
        return _instances[key]

    llm_class = LLM_REGISTRY[provider]

    instance = llm_class(
        api_key=api_key,
        model=model,
    )

    if use_cache:
        _instances[key] = instance

    return instance


def clear_llm_cache() -> None:
    """Clear cached LLM instances so next call picks up new config."""
    _instances.clear()
