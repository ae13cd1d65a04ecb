"""Wire a LinkService from configuration."""

import logging

from .database.base import LinkStoreBase
from .database.cache import ResolutionCache, MemoryCacheBackend, RedisCacheBackend
from .database.memory import InMemoryLinkStore
from .database.postgres import PostgresLinkStore
from .service import LinkService
from .tokens import TokenGenerator


def build_store(config, logger: logging.Logger) -> LinkStoreBase:
    """Create the link store selected by config.store_backend."""
    if config.store_backend == "memory":
        logger.warning("Using in-memory link store; links are lost on restart")
        return InMemoryLinkStore(logger=logger)

    logger.info(f"Using PostgreSQL link store at {config.database_url.rpartition('@')[2]}")
    return PostgresLinkStore(
        db_config=config.database_url,
        pool_max_size=config.db_pool_max_size,
        connection_timeout_seconds=config.db_timeout_seconds,
        create_tables=config.database_create_tables,
        logger=logger,
    )


def build_cache(config, logger: logging.Logger) -> ResolutionCache:
    """Create the resolution cache; Redis when config.redis_url is set."""
    if config.redis_url:
        logger.info(f"Using Redis cache at {config.redis_url.rpartition('@')[2]}")
        backend = RedisCacheBackend(redis_url=config.redis_url, logger=logger)
    else:
        logger.info("Using in-process cache")
        backend = MemoryCacheBackend()

    return ResolutionCache(
        backend=backend,
        prefix=config.cache_prefix,
        link_ttl=config.cache_link_ttl_seconds,
        negative_ttl=config.cache_negative_ttl_seconds,
        list_ttl=config.cache_list_ttl_seconds,
        stats_ttl=config.cache_stats_ttl_seconds,
        logger=logger,
    )


def build_service(config, logger: logging.Logger) -> LinkService:
    return LinkService(
        store=build_store(config, logger),
        cache=build_cache(config, logger),
        token_generator=TokenGenerator(default_length=config.token_length),
        logger=logger,
        max_collision_retries=config.max_collision_retries,
    )
