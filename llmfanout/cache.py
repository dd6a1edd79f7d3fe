import time
from typing import Callable, Dict, Optional, Tuple


class ModelCache:
    """
    Resolved-model cache keyed by ``(provider, api_key)``.

    Entries are added only after a successful resolution. With the default
    ``ttl=None`` they live as long as the cache object itself; a positive
    ``ttl`` (seconds) makes entries expire so a deprecated model is
    rediscovered.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Tuple[str, str], Tuple[str, float]] = {}

    def get(self, provider: str, api_key: str) -> Optional[str]:
        entry = self._entries.get((provider, api_key))
        if entry is None:
            return None
        model, stored_at = entry
        if self.ttl is not None and self._clock() - stored_at >= self.ttl:
            del self._entries[(provider, api_key)]
            return None
        return model

    def set(self, provider: str, api_key: str, model: str) -> None:
        self._entries[(provider, api_key)] = (model, self._clock())

    def invalidate(self, provider: str, api_key: str) -> None:
        self._entries.pop((provider, api_key), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return self.get(*key) is not None
