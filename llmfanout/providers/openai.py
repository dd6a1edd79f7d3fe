from typing import Dict, Any, List, Optional

from openai import AsyncOpenAI

from .base import BaseLLMProvider, REQUEST_TIMEOUT, TEMPERATURE
from ..types import Attachment, Turn
from ..utils import build_openai_messages


class OpenAIProvider(BaseLLMProvider):
    """
    Provider for OpenAI-compatible chat/completions APIs.

    xAI and OpenRouter reuse this class with their own base URL, headers
    and model preferences.
    """

    provider_name = "openai"
    display_name = "OpenAI"
    default_model = "gpt-4o"
    preferred_patterns = (
        r"^gpt-4o(\b|[-.])",
        r"^gpt-4\.1(\b|[-.])",
        r"^gpt-4(\b|[-.])",
        r"^gpt-3\.5(\b|[-.])",
    )

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        super().__init__(api_key, timeout=timeout)
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=default_headers,
            timeout=timeout,
            max_retries=0,
        ) if api_key else None

    async def chat(
        self,
        model: str,
        turns: List[Turn],
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        """
        Send a chat request using the OpenAI-compatible API.

        Attachments are merged into the last user turn as data-URI image parts.

        Args:
            model (str): The model identifier.
            turns (List[Turn]): Normalized conversation.
            attachments (List[Attachment], optional): Inline images.

        Returns:
            Dict[str, Any]: ``provider``, ``model`` and the first choice's text.
        """
        if not self.client:
            raise RuntimeError(f"{self.display_name} client not configured")

        resp = await self.client.chat.completions.create(
            model=model,
            messages=build_openai_messages(turns, attachments),
            temperature=TEMPERATURE,
        )

        text = ""
        if resp.choices:
            text = resp.choices[0].message.content or ""

        return {
            "provider": self.provider_name,
            "model": model,
            "text": text,
        }

    async def get_models(self) -> List[str]:
        """
        Get list of available models from the provider API.

        Returns:
            List[str]: Model ids in the order the provider returned them.
        """
        if not self.client:
            return []

        models = await self.client.models.list()
        return [m.id for m in models.data]
