from typing import Dict, Any, List, Optional, Tuple

from anthropic import AsyncAnthropic

from .base import BaseLLMProvider, MAX_TOKENS, REQUEST_TIMEOUT, TEMPERATURE
from ..types import Attachment, Turn
from ..utils import find_last_user_index, valid_attachments


class AnthropicProvider(BaseLLMProvider):
    """
    Provider for Anthropic (Claude) Messages API.
    """

    provider_name = "anthropic"
    display_name = "Anthropic"
    default_model = "claude-3-5-sonnet-20240620"
    # No public listing endpoint is used; the default is always picked.
    supports_model_listing = False

    def __init__(self, api_key: Optional[str], timeout: float = REQUEST_TIMEOUT):
        super().__init__(api_key, timeout=timeout)
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0) if api_key else None

    async def chat(
        self,
        model: str,
        turns: List[Turn],
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        """
        Send a chat request to the Claude API.

        Handles:
        - System prompt extraction (sent as separate parameter).
        - Image blocks on the last user turn.

        Args:
            model (str): The specific Claude model identifier.
            turns (List[Turn]): Normalized conversation.
            attachments (List[Attachment], optional): Inline images.

        Returns:
            Dict[str, Any]: ``provider``, ``model`` and the joined text blocks.
        """
        if not self.client:
            raise RuntimeError("Claude (Anthropic) client not configured")

        system_text, converted_messages = self._convert_messages(turns, attachments)

        request_kwargs = {
            "model": model,
            "messages": converted_messages,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }
        if system_text:
            request_kwargs["system"] = system_text

        resp = await self.client.messages.create(**request_kwargs)

        text = "\n".join(
            block.text
            for block in resp.content
            if getattr(block, "type", None) == "text" and block.text
        )

        return {
            "provider": self.provider_name,
            "model": model,
            "text": text,
        }

    def _convert_messages(
        self,
        turns: List[Turn],
        attachments: Optional[List[Attachment]] = None,
    ) -> Tuple[Optional[str], List[Dict[str, Any]]]:
        """
        Convert turns to Claude format.

        System turns are joined into the separate ``system`` parameter. The
        last user turn is located before that extraction, and only it gets
        the image blocks.

        Returns:
            Tuple containing:
            - system_text: Newline-joined system prompt (or None)
            - converted: List of message dicts suitable for the API
        """
        target_idx = find_last_user_index(turns) if attachments else -1
        images = valid_attachments(attachments)

        system_parts = []
        converted = []

        for i, turn in enumerate(turns):
            role = turn["role"]
            content = turn["content"]

            if role == "system":
                system_parts.append(content)
                continue

            if i == target_idx:
                blocks = []
                if content.strip():
                    blocks.append({"type": "text", "text": content})
                for att in images:
                    blocks.append({
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": att["mime"],
                            "data": att["data"],
                        },
                    })
                # Claude rejects an empty content list
                converted.append({"role": "user", "content": blocks or [{"type": "text", "text": content}]})
            else:
                converted.append({"role": role, "content": [{"type": "text", "text": content}]})

        system_text = "\n".join(system_parts) if system_parts else None
        return system_text, converted

    async def get_models(self) -> List[str]:
        """Anthropic models are not discovered; only the default is offered."""
        return [self.default_model]
