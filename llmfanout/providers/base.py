import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from ..types import Attachment, DispatchResult, Turn
from ..utils import extract_error_message

logger = logging.getLogger(__name__)

# Sampling defaults shared by every provider
TEMPERATURE = 0.2
MAX_TOKENS = 1024
REQUEST_TIMEOUT = 60.0


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    One instance wraps one API key. Subclasses translate the normalized
    conversation into the provider's wire request (``chat``) and list the
    models the key can use (``get_models``). ``call`` is the uniform
    boundary used by the dispatcher and never raises.
    """

    provider_name: str = ""
    display_name: str = ""
    default_model: str = ""
    # Exact ids, checked in rank order before the family patterns
    preferred_models: Sequence[str] = ()
    # Regexes matched against listed ids, in rank order
    preferred_patterns: Sequence[str] = ()
    supports_model_listing: bool = True

    def __init__(self, api_key: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout

    @abstractmethod
    async def chat(
        self,
        model: str,
        turns: List[Turn],
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        """
        Send a chat request to the provider.

        Args:
            model (str): The model identifier.
            turns (List[Turn]): Normalized conversation.
            attachments (List[Attachment], optional): Images for the last user turn.

        Returns:
            Dict[str, Any]: ``{"provider", "model", "text"}`` with plain text.

        Raises:
            Exception: Any transport or provider error.
        """
        pass

    @abstractmethod
    async def get_models(self) -> List[str]:
        """
        Get list of available models from the provider.

        Returns:
            List[str]: List of model identifiers.

        Raises:
            Exception: Any transport or provider error.
        """
        pass

    async def call(
        self,
        turns: List[Turn],
        model: str,
        attachments: Optional[List[Attachment]] = None,
    ) -> DispatchResult:
        """
        Run ``chat`` and convert the outcome into a dispatch result.

        Errors are caught here and returned as ``ok=False`` results carrying
        the most specific message the provider gave.
        """
        start = time.perf_counter()
        try:
            resp = await self.chat(model, turns, attachments)
        except Exception as e:
            ms = self._elapsed_ms(start)
            error = extract_error_message(e)
            logger.warning("%s call failed after %dms: %s", self.provider_name, ms, error)
            return {
                "ok": False,
                "provider": self.provider_name,
                "model": model,
                "error": error,
                "ms": ms,
            }

        return {
            "ok": True,
            "provider": self.provider_name,
            "model": model,
            "text": resp.get("text") or "",
            "ms": self._elapsed_ms(start),
        }

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000.0)
