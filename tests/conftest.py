"""Pytest configuration and fixtures."""

import random
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List

import pytest
from httpx import AsyncClient, ASGITransport

from config import Config
from shortlink.common.logging_config import setup_logging
from shortlink.database.cache import ResolutionCache, MemoryCacheBackend
from shortlink.database.memory import InMemoryLinkStore
from shortlink.service import LinkService
from shortlink.tokens import TokenGenerator
from web_app import create_app


class FakeMonotonic:
    """Monotonic clock for cache TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcClock:
    """Wall clock for expiry tests."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class SequenceTokenGenerator(TokenGenerator):
    """Hands out a fixed sequence of tokens, repeating the last one."""

    def __init__(self, tokens: List[str]):
        super().__init__(default_length=7)
        self.tokens = list(tokens)

    def generate(self, length=None) -> str:
        if len(self.tokens) > 1:
            return self.tokens.pop(0)
        return self.tokens[0]


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def store(logger) -> InMemoryLinkStore:
    return InMemoryLinkStore(logger=logger)


@pytest.fixture
def cache_clock() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def utc_clock() -> FakeUtcClock:
    return FakeUtcClock()


@pytest.fixture
def cache(cache_clock, logger) -> ResolutionCache:
    return ResolutionCache(backend=MemoryCacheBackend(clock=cache_clock), logger=logger)


@pytest.fixture
def token_generator() -> TokenGenerator:
    """Create a seeded token generator."""
    return TokenGenerator(default_length=7, rng=random.Random(1234))


@pytest.fixture
def service(store, cache, token_generator, utc_clock, logger) -> LinkService:
    """Create service instance over the in-memory store."""
    return LinkService(
        store=store,
        cache=cache,
        token_generator=token_generator,
        logger=logger,
        clock=utc_clock,
    )


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]


@pytest.fixture
def config() -> Config:
    return Config(
        _env_file=None,
        store_backend="memory",
        base_url="http://testserver",
    )


@pytest.fixture
def app(service, config, logger):
    """Create test FastAPI app."""
    return create_app(service_instance=service, config=config, logger=logger)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
