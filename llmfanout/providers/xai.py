from typing import Optional

from .base import REQUEST_TIMEOUT
from .openai import OpenAIProvider


class XAIProvider(OpenAIProvider):
    """
    Provider for xAI Grok (OpenAI-compatible).
    """

    provider_name = "xai"
    display_name = "xAI"
    default_model = "grok-2"
    preferred_models = ("grok-2", "grok-2-mini", "grok-2-1212", "grok-beta")
    preferred_patterns = ()

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.x.ai/v1",
        timeout: float = REQUEST_TIMEOUT,
    ):
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)
