import asyncio

import pytest

from llmfanout.cache import ModelCache
from llmfanout.providers import GeminiProvider, OpenAIProvider, OpenRouterProvider, XAIProvider
from llmfanout.resolver import ModelResolver, pick_model

from .conftest import FakeProvider


class TestPickModel:

    def test_openai_family_preference(self):
        ids = ["whisper-1", "gpt-3.5-turbo", "gpt-4-turbo", "gpt-4o-mini", "gpt-4.1"]
        assert pick_model(ids, OpenAIProvider.preferred_models, OpenAIProvider.preferred_patterns) == "gpt-4o-mini"

    def test_openai_falls_through_families(self):
        ids = ["dall-e-3", "gpt-3.5-turbo", "gpt-4.1-nano"]
        assert pick_model(ids, (), OpenAIProvider.preferred_patterns) == "gpt-4.1-nano"

    def test_plain_gpt_4_matches_at_word_boundary(self):
        assert pick_model(["gpt-4", "gpt-3.5-turbo"], (), OpenAIProvider.preferred_patterns) == "gpt-4"

    def test_exact_before_pattern(self):
        ids = ["gemini-1.0-pro", "gemini-1.5-flash", "gemini-2.5-pro"]
        assert pick_model(ids, GeminiProvider.preferred_models, GeminiProvider.preferred_patterns) == "gemini-2.5-pro"

    def test_gemini_family_fallback(self):
        ids = ["embedding-001", "gemini-exp-1206"]
        assert pick_model(ids, GeminiProvider.preferred_models, GeminiProvider.preferred_patterns) == "gemini-exp-1206"

    def test_first_returned_fallback(self):
        assert pick_model(["grok-3", "grok-vision"], XAIProvider.preferred_models) == "grok-3"

    def test_openrouter_rank_order(self):
        ids = ["openai/gpt-4o", "mistral/large", "anthropic/claude-3.5-sonnet"]
        assert pick_model(ids, OpenRouterProvider.preferred_models) == "anthropic/claude-3.5-sonnet"

    def test_empty_listing(self):
        assert pick_model([], ("a",), ("^a",)) is None


class TestModelResolver:

    @pytest.mark.asyncio
    async def test_second_resolution_uses_cache(self):
        resolver = ModelResolver(cache=ModelCache())
        provider = FakeProvider("sk-test", models=["fake-1", "fake-2"])

        first = await resolver.resolve(provider)
        second = await resolver.resolve(provider)

        assert first == second == "fake-1"
        assert provider.list_calls == 1

    @pytest.mark.asyncio
    async def test_cache_is_keyed_by_api_key(self):
        resolver = ModelResolver(cache=ModelCache())
        await resolver.resolve(FakeProvider("key-a", models=["a-model"]))
        other = FakeProvider("key-b", models=["b-model"])

        assert await resolver.resolve(other) == "b-model"
        assert other.list_calls == 1

    @pytest.mark.asyncio
    async def test_listing_failure_falls_back_to_default_uncached(self):
        cache = ModelCache()
        resolver = ModelResolver(cache=cache)
        provider = FakeProvider("sk-test", models=RuntimeError("network down"))

        assert await resolver.resolve(provider) == "fake-default"
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_empty_listing_falls_back_to_default(self):
        cache = ModelCache()
        resolver = ModelResolver(cache=cache)

        assert await resolver.resolve(FakeProvider("sk-test", models=[])) == "fake-default"
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_listing_timeout_falls_back(self):
        class SlowProvider(FakeProvider):
            async def get_models(self):
                await asyncio.sleep(1)
                return ["never"]

        resolver = ModelResolver(cache=ModelCache(), timeout=0.01)
        assert await resolver.resolve(SlowProvider("sk-test")) == "fake-default"

    @pytest.mark.asyncio
    async def test_non_listing_provider_returns_default_and_caches(self):
        class NoListing(FakeProvider):
            supports_model_listing = False

        cache = ModelCache()
        provider = NoListing("sk-ant")
        assert await ModelResolver(cache=cache).resolve(provider) == "fake-default"
        assert provider.list_calls == 0
        assert cache.get("fake", "sk-ant") == "fake-default"

    @pytest.mark.asyncio
    async def test_discover_propagates_errors(self):
        resolver = ModelResolver(cache=ModelCache())
        with pytest.raises(RuntimeError, match="bad key"):
            await resolver.discover(FakeProvider("sk-test", models=RuntimeError("bad key")))


class TestModelCache:

    def test_ttl_expiry(self):
        now = [100.0]
        cache = ModelCache(ttl=10, clock=lambda: now[0])
        cache.set("openai", "k", "gpt-4o")
        assert cache.get("openai", "k") == "gpt-4o"

        now[0] = 110.0
        assert cache.get("openai", "k") is None
        assert len(cache) == 0

    def test_no_ttl_never_expires(self):
        now = [0.0]
        cache = ModelCache(clock=lambda: now[0])
        cache.set("openai", "k", "gpt-4o")
        now[0] = 1e9
        assert ("openai", "k") in cache

    def test_invalidate_and_clear(self):
        cache = ModelCache()
        cache.set("openai", "a", "m1")
        cache.set("google", "b", "m2")
        cache.invalidate("openai", "a")
        assert cache.get("openai", "a") is None
        cache.clear()
        assert len(cache) == 0
