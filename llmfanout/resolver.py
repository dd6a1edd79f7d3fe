import asyncio
import logging
import re
from typing import List, Optional, Sequence

from .cache import ModelCache
from .providers.base import BaseLLMProvider
from .utils import extract_error_message, redact_key

logger = logging.getLogger(__name__)

DISCOVERY_TIMEOUT = 12.0


def pick_model(
    ids: List[str],
    preferred_models: Sequence[str] = (),
    preferred_patterns: Sequence[str] = (),
) -> Optional[str]:
    """
    Choose a model from a provider listing.

    Order of preference:
    1. The first entry of ``preferred_models`` present in ``ids``.
    2. For each pattern in rank order, the first id it matches.
    3. The first id returned by the provider.

    Args:
        ids (List[str]): Model ids as listed by the provider.
        preferred_models (Sequence[str]): Exact ids in rank order.
        preferred_patterns (Sequence[str]): Family regexes in rank order.

    Returns:
        Optional[str]: The chosen id, or None for an empty listing.
    """
    for name in preferred_models:
        if name in ids:
            return name
    for pattern in preferred_patterns:
        regex = re.compile(pattern)
        for model_id in ids:
            if regex.search(model_id):
                return model_id
    return ids[0] if ids else None


class ModelResolver:
    """
    Picks a concrete model for a provider when the request does not pin one.

    Successful discoveries are stored in the injected ``ModelCache`` so each
    ``(provider, api_key)`` pair is listed at most once while cached.
    Concurrent misses for the same key may both list; they converge on the
    same value.
    """

    def __init__(self, cache: Optional[ModelCache] = None, timeout: float = DISCOVERY_TIMEOUT):
        self.cache = cache if cache is not None else ModelCache()
        self.timeout = timeout

    async def resolve(self, provider: BaseLLMProvider) -> Optional[str]:
        """
        Return a model id for the provider's key. Never raises.

        Falls back to the provider default (uncached) when listing fails,
        times out or returns nothing.
        """
        name = provider.provider_name
        api_key = provider.api_key or ""

        cached = self.cache.get(name, api_key)
        if cached is not None:
            return cached

        try:
            return await self.discover(provider)
        except Exception as e:
            logger.info(
                "Model discovery for %s (%s) failed, using %s: %s",
                name, redact_key(api_key), provider.default_model, extract_error_message(e),
            )
            return provider.default_model

    async def discover(self, provider: BaseLLMProvider) -> str:
        """
        List models and pick one, caching the result.

        Unlike ``resolve`` this propagates errors, which is what key
        validation needs. An empty listing yields the provider default
        without caching it.

        Raises:
            Exception: Any listing error, including ``asyncio.TimeoutError``.
        """
        name = provider.provider_name
        api_key = provider.api_key or ""

        if not provider.supports_model_listing:
            self.cache.set(name, api_key, provider.default_model)
            return provider.default_model

        ids = await asyncio.wait_for(provider.get_models(), timeout=self.timeout)
        pick = pick_model(ids, provider.preferred_models, provider.preferred_patterns)
        if not pick:
            return provider.default_model

        self.cache.set(name, api_key, pick)
        logger.debug("Resolved %s model for %s: %s", name, redact_key(api_key), pick)
        return pick
