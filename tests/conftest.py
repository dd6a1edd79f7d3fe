import asyncio

import pytest

from llmfanout.cache import ModelCache
from llmfanout.dispatcher import Dispatcher
from llmfanout.providers.base import BaseLLMProvider
from llmfanout.resolver import ModelResolver


class FakeProvider(BaseLLMProvider):
    """In-memory provider that records calls instead of touching the network."""

    provider_name = "fake"
    display_name = "Fake"
    default_model = "fake-default"

    def __init__(self, api_key, name="fake", text="ok", error=None, models=None, delay=0.0):
        super().__init__(api_key)
        self.provider_name = name
        self.display_name = name.title()
        self.text = text
        self.error = error
        self.models = models if models is not None else ["fake-1"]
        self.delay = delay
        self.chat_calls = []
        self.list_calls = 0

    async def chat(self, model, turns, attachments=None):
        self.chat_calls.append((model, turns, attachments))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {"provider": self.provider_name, "model": model, "text": self.text}

    async def get_models(self):
        self.list_calls += 1
        if isinstance(self.models, Exception):
            raise self.models
        return list(self.models)


@pytest.fixture
def mock_env(monkeypatch):
    """Mock environment variables for settings."""
    monkeypatch.setenv("LLMFANOUT_PORT", "4000")
    monkeypatch.setenv("LLMFANOUT_DISCOVERY_TIMEOUT", "5")
    monkeypatch.setenv("LLMFANOUT_MODEL_CACHE_TTL", "300")
    monkeypatch.setenv("OPENROUTER_APP_TITLE", "TestApp")


@pytest.fixture
def fake_providers():
    """Provider instances handed out by the factories, keyed by provider id."""
    return {}


@pytest.fixture
def make_dispatcher(fake_providers):
    """
    Build a dispatcher whose factories return FakeProviders.

    ``specs`` maps provider id -> FakeProvider keyword arguments.
    """
    def _make(specs, resolver=None):
        def factory_for(name, kwargs):
            def factory(api_key):
                provider = FakeProvider(api_key, name=name, **kwargs)
                fake_providers[name] = provider
                return provider
            return factory

        factories = {name: factory_for(name, kwargs) for name, kwargs in specs.items()}
        return Dispatcher(resolver=resolver or ModelResolver(cache=ModelCache()), factories=factories)

    return _make


@pytest.fixture
def user_turns():
    return [{"role": "user", "content": "2+2?"}]


def by_provider(results):
    """Index results by provider id; result order is completion order."""
    return {r["provider"]: r for r in results}
