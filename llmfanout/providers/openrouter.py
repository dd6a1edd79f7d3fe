from typing import Optional

from .base import REQUEST_TIMEOUT
from .openai import OpenAIProvider


class OpenRouterProvider(OpenAIProvider):
    """
    Provider for OpenRouter (OpenAI-compatible, vendor-prefixed model ids).

    OpenRouter attributes traffic to an app through the ``X-Title`` and
    ``HTTP-Referer`` headers.
    """

    provider_name = "openrouter"
    display_name = "OpenRouter"
    default_model = "openai/gpt-4o"
    preferred_models = (
        "anthropic/claude-3.7-sonnet",
        "anthropic/claude-3.5-sonnet",
        "openai/gpt-4o",
        "openai/gpt-4.1-mini",
        "google/gemini-2.0-pro",
        "google/gemini-1.5-pro",
    )
    preferred_patterns = ()

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        app_title: str = "KeyBridge",
        referer: str = "http://localhost:5173",
        timeout: float = REQUEST_TIMEOUT,
    ):
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            default_headers={"X-Title": app_title, "HTTP-Referer": referer},
            timeout=timeout,
        )
