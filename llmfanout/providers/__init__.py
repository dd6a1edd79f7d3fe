from typing import Callable, Dict, Optional

from .base import BaseLLMProvider
from .openai import OpenAIProvider
from .anthropic import AnthropicProvider
from .gemini import GeminiProvider
from .xai import XAIProvider
from .openrouter import OpenRouterProvider
from ..config import Settings

ProviderFactory = Callable[[str], BaseLLMProvider]

PROVIDERS: Dict[str, type] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "google": GeminiProvider,
    "xai": XAIProvider,
    "openrouter": OpenRouterProvider,
}


def default_factories(settings: Optional[Settings] = None) -> Dict[str, ProviderFactory]:
    """
    Build the provider-id -> constructor mapping used by the dispatcher.

    Each factory takes an API key and returns a provider bound to it.
    """
    settings = settings or Settings()
    timeout = settings.request_timeout
    factories: Dict[str, ProviderFactory] = {
        name: (lambda api_key, cls=cls: cls(api_key=api_key, timeout=timeout))
        for name, cls in PROVIDERS.items()
    }
    factories["openrouter"] = lambda api_key: OpenRouterProvider(
        api_key=api_key,
        app_title=settings.openrouter_app_title,
        referer=settings.openrouter_referer,
        timeout=timeout,
    )
    return factories


__all__ = [
    "BaseLLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "XAIProvider",
    "OpenRouterProvider",
    "PROVIDERS",
    "ProviderFactory",
    "default_factories",
]
