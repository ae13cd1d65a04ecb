#!/usr/bin/env python3
"""
Main entry point for the short link service.

Concurrency: the server handles many connections per process via async I/O
(FastAPI + asyncpg pool + redis.asyncio). Set WORKERS > 1 for multi-process
scaling; each worker has its own pool and its own per-URL locks, so the
database's unique index is what keeps workers from minting duplicates.

Usage:
    python app.py

Environment variables:
    STORE_BACKEND - 'postgres' (default) or 'memory'
    DATABASE_URL - PostgreSQL connection URL
    DATABASE_CREATE_TABLES - Set to 'true' to create the schema on startup
    REDIS_URL - Redis connection URL (in-process cache when unset)
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import load_config
from shortlink.bootstrap import build_service
from shortlink.common.logging_config import setup_logging
from web_app import create_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service on startup and close it on shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting short link service...")
    service = build_service(config, logger)
    app.state.service = service

    health = await service.health_check()
    if not health["overall"]:
        logger.warning(f"Service starting degraded: {health}")
    else:
        logger.info("Service started successfully")

    yield

    logger.info("Shutting down short link service...")
    await service.close()
    logger.info("Service stopped")


def _build_app(config, logger) -> FastAPI:
    # service is attached by the lifespan once the event loop is running
    app = create_app(service_instance=None, config=config, logger=logger)
    app.router.lifespan_context = lifespan
    return app


def create_asgi_app() -> FastAPI:
    """App factory used by each uvicorn worker process."""
    config = load_config()
    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )
    return _build_app(config, logger)


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Short Link Service")
    logger.info(f"Configuration: {config.model_dump(exclude={'database_url', 'redis_url'})}")

    if config.workers > 1:
        # uvicorn only forks workers when given an import string
        logger.info(f"Starting {config.workers} workers on {config.host}:{config.port}")
        uvicorn.run(
            "app:create_asgi_app",
            factory=True,
            host=config.host,
            port=config.port,
            workers=config.workers,
            log_level=config.log_level.lower(),
            access_log=False,
        )
        return

    app = _build_app(config, logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=False,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
