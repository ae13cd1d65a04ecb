"""Tests for configuration and service wiring."""

import pytest
from pydantic import ValidationError

from config import Config
from shortlink.bootstrap import build_service, build_cache, build_store
from shortlink.database.cache import MemoryCacheBackend, RedisCacheBackend
from shortlink.database.memory import InMemoryLinkStore
from shortlink.database.postgres import PostgresLinkStore


class TestConfig:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        config = Config(_env_file=None)

        assert config.store_backend == "postgres"
        assert config.token_length == 7
        assert config.max_collision_retries == 5
        assert config.cache_link_ttl_seconds == 1800
        assert config.cache_negative_ttl_seconds == 60
        assert config.redis_url is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TOKEN_LENGTH", "9")
        monkeypatch.setenv("STORE_BACKEND", "memory")

        config = Config(_env_file=None)

        assert config.token_length == 9
        assert config.store_backend == "memory"

    def test_negative_ttl_must_be_shorter(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, cache_link_ttl_seconds=60, cache_negative_ttl_seconds=60)

    @pytest.mark.parametrize("length", [0, 51])
    def test_token_length_bounds(self, length):
        with pytest.raises(ValidationError):
            Config(_env_file=None, token_length=length)

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, store_backend="sqlite")


class TestBootstrap:

    def test_memory_service(self, logger):
        config = Config(_env_file=None, store_backend="memory", redis_url=None, token_length=9)

        service = build_service(config, logger)

        assert isinstance(service.store, InMemoryLinkStore)
        assert isinstance(service.cache.backend, MemoryCacheBackend)
        assert service.generator.default_length == 9

    def test_postgres_store(self, logger):
        config = Config(_env_file=None, database_url="postgresql://u:p@db:5433/links")

        store = build_store(config, logger)

        assert isinstance(store, PostgresLinkStore)
        assert (store.host, store.port, store.database) == ("db", 5433, "links")

    def test_redis_cache(self, logger):
        config = Config(_env_file=None, redis_url="redis://localhost:6379/0", cache_prefix="t")

        cache = build_cache(config, logger)

        assert isinstance(cache.backend, RedisCacheBackend)
        assert cache.keys.link_key("abc") == "t:link:abc"
