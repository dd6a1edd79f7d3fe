import base64
from typing import Dict, Any, List, Optional, Tuple

from google import genai
from google.genai import types

from .base import BaseLLMProvider, MAX_TOKENS, REQUEST_TIMEOUT, TEMPERATURE
from ..types import Attachment, Turn
from ..utils import find_last_user_index, valid_attachments


class GeminiProvider(BaseLLMProvider):
    """
    Provider for Google Gemini API (using google-genai SDK).
    """

    provider_name = "google"
    display_name = "Google"
    default_model = "gemini-1.5-pro"
    preferred_models = (
        "gemini-2.5-pro",
        "gemini-2.0-pro",
        "gemini-2.0-flash",
        "gemini-1.5-pro",
        "gemini-1.5-flash",
    )
    preferred_patterns = (r"^gemini-",)

    def __init__(self, api_key: Optional[str], timeout: float = REQUEST_TIMEOUT):
        super().__init__(api_key, timeout=timeout)
        if api_key:
            # HttpOptions.timeout is in milliseconds
            self.client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=int(timeout * 1000)),
            )
        else:
            self.client = None

    async def chat(
        self,
        model: str,
        turns: List[Turn],
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        """
        Send a chat request to the Gemini API.

        Handles:
        - Role mapping (assistant -> model).
        - System instruction extraction.
        - Inline image parts on the last user turn.

        Args:
            model (str): Gemini model identifier.
            turns (List[Turn]): Normalized conversation.
            attachments (List[Attachment], optional): Inline images.

        Returns:
            Dict[str, Any]: ``provider``, ``model`` and the joined candidate text.
        """
        if not self.client:
            raise RuntimeError("Gemini client not configured")

        system_instruction, contents = self._convert_messages(turns, attachments)

        config = types.GenerateContentConfig(
            temperature=TEMPERATURE,
            top_p=0.95,
            max_output_tokens=MAX_TOKENS,
            system_instruction=system_instruction,
        )

        resp = await self.client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=config,
        )

        texts = []
        if resp.candidates and resp.candidates[0].content and resp.candidates[0].content.parts:
            texts = [part.text for part in resp.candidates[0].content.parts if part.text]

        return {
            "provider": self.provider_name,
            "model": model,
            "text": "\n".join(texts),
        }

    def _convert_messages(
        self,
        turns: List[Turn],
        attachments: Optional[List[Attachment]] = None,
    ) -> Tuple[Optional[str], List[types.Content]]:
        """
        Convert turns to Gemini contents (google-genai SDK).

        System turns are newline-joined into the system instruction. Blank
        text is omitted from parts. Images go to the last user turn, located
        before system extraction.
        """
        target_idx = find_last_user_index(turns) if attachments else -1
        images = valid_attachments(attachments)

        system_parts = []
        contents = []

        for i, turn in enumerate(turns):
            role = turn["role"]
            content = turn["content"]

            if role == "system":
                system_parts.append(content)
                continue

            # Map roles: "assistant" -> "model"
            gemini_role = "model" if role == "assistant" else "user"

            parts = []
            if content.strip():
                parts.append(types.Part(text=content))
            if i == target_idx:
                for att in images:
                    parts.append(types.Part.from_bytes(
                        data=base64.b64decode(att["data"]),
                        mime_type=att["mime"],
                    ))

            contents.append(types.Content(role=gemini_role, parts=parts))

        system_instruction = "\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    async def get_models(self) -> List[str]:
        """
        Get list of Gemini models that support ``generateContent``.

        The ``models/`` resource prefix is stripped from the names.
        """
        if not self.client:
            return []

        names = []
        async for m in await self.client.aio.models.list():
            if m.supported_actions and "generateContent" not in m.supported_actions:
                continue
            if m.name:
                names.append(m.name.split("/")[-1])
        return names
