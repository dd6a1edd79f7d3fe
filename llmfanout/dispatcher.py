import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional

from .cache import ModelCache
from .config import Settings
from .providers import PROVIDERS, ProviderFactory, default_factories
from .resolver import ModelResolver
from .types import Attachment, DispatchResult, Turn
from .utils import extract_error_message, normalize_messages, redact_key, valid_attachments

logger = logging.getLogger(__name__)

PartialCallback = Callable[[DispatchResult], Awaitable[None]]


class ConfigurationError(ValueError):
    """Raised when a request enables no provider at all."""


class EnabledProvider(NamedTuple):
    name: str
    api_key: str
    model: Optional[str]


class Dispatcher:
    """
    Fans one conversation out to every enabled provider concurrently.

    Each provider runs in its own pipeline (resolve model, then call) whose
    outcome is always captured as a ``DispatchResult``; a failing provider
    never cancels or alters its siblings.
    """

    def __init__(
        self,
        resolver: Optional[ModelResolver] = None,
        factories: Optional[Dict[str, ProviderFactory]] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or Settings()
        self.resolver = resolver or ModelResolver(
            cache=ModelCache(ttl=settings.model_cache_ttl),
            timeout=settings.discovery_timeout,
        )
        self.factories = factories if factories is not None else default_factories(settings)

    def enabled_providers(self, providers: Any) -> List[EnabledProvider]:
        """
        Select the providers that carry an API key.

        Unknown provider ids are ignored. A blank ``model`` means auto-resolve.

        Raises:
            ConfigurationError: If no provider is enabled.
        """
        enabled = []
        if isinstance(providers, dict):
            for name, cfg in providers.items():
                if not isinstance(cfg, dict):
                    continue
                api_key = cfg.get("apiKey")
                if not isinstance(api_key, str) or not api_key.strip():
                    continue
                if name not in self.factories:
                    logger.warning("Ignoring unknown provider %r", name)
                    continue
                model = cfg.get("model")
                if not isinstance(model, str) or not model.strip():
                    model = None
                enabled.append(EnabledProvider(name, api_key.strip(), model and model.strip()))

        if not enabled:
            raise ConfigurationError("No providers configured. Please add API keys in Settings.")
        return enabled

    async def run_provider(
        self,
        target: EnabledProvider,
        turns: List[Turn],
        attachments: List[Attachment],
        on_partial: Optional[PartialCallback] = None,
    ) -> DispatchResult:
        """
        Resolve the model for one provider and call it.

        Never raises. When no model can be determined the provider is not
        called and an immediate failure is returned. ``on_partial`` receives
        an interim result once the model is known and the call is in flight.
        """
        start = time.perf_counter()
        model = target.model
        try:
            adapter = self.factories[target.name](target.api_key)
            if model is None:
                model = await self.resolver.resolve(adapter)
            if not model:
                display = getattr(adapter, "display_name", "") or target.name
                return {
                    "ok": False,
                    "provider": target.name,
                    "model": "",
                    "error": f"Unable to resolve {display} model",
                    "ms": 0,
                }

            if on_partial is not None:
                await on_partial({
                    "ok": True,
                    "provider": target.name,
                    "model": model,
                    "text": "",
                    "ms": 0,
                    "partial": True,
                })

            return await adapter.call(turns, model, attachments)
        except Exception as e:
            logger.exception("Provider pipeline for %s failed", target.name)
            return {
                "ok": False,
                "provider": target.name,
                "model": model or "",
                "error": extract_error_message(e),
                "ms": int((time.perf_counter() - start) * 1000.0),
            }

    async def dispatch(
        self,
        messages: Any,
        providers: Any,
        attachments: Any = None,
    ) -> List[DispatchResult]:
        """
        Send the conversation to every enabled provider and gather the results.

        Args:
            messages (Any): Raw conversation; normalized before use.
            providers (Any): Mapping of provider id to ``{apiKey, model?}``.
            attachments (Any): Raw attachments; invalid entries are dropped.

        Returns:
            List[DispatchResult]: One result per enabled provider, in
            completion order.

        Raises:
            ConfigurationError: If no provider is enabled.
        """
        targets = self.enabled_providers(providers)
        turns = normalize_messages(messages)
        images = valid_attachments(attachments)

        logger.info(
            "Dispatching %d turn(s), %d attachment(s) to %s",
            len(turns), len(images), ", ".join(t.name for t in targets),
        )

        tasks = [
            asyncio.create_task(self.run_provider(target, turns, images))
            for target in targets
        ]

        results: List[DispatchResult] = []
        for next_done in asyncio.as_completed(tasks):
            results.append(await next_done)

        failed = sum(1 for r in results if not r.get("ok"))
        logger.info("Dispatch finished: %d ok, %d failed", len(results) - failed, failed)
        return results

    async def validate_key(self, provider: str, api_key: str) -> Dict[str, Any]:
        """
        Check an API key by running model discovery for it.

        Returns:
            Dict[str, Any]: ``{"ok": True, "provider", "model"}`` or
            ``{"ok": False, "provider", "error"}``.

        Raises:
            ValueError: If the provider id is unknown.
        """
        if provider not in self.factories:
            raise ValueError(
                f"Unknown provider: {provider}. Use one of {', '.join(PROVIDERS)}"
            )

        try:
            adapter = self.factories[provider](api_key)
            model = await self.resolver.discover(adapter)
        except Exception as e:
            logger.info("Key validation for %s (%s) failed", provider, redact_key(api_key))
            return {"ok": False, "provider": provider, "error": extract_error_message(e)}

        return {"ok": True, "provider": provider, "model": model}
