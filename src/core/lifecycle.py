"""Application lifecycle management.

This module handles application startup and shutdown events, ensuring proper
initialization and cleanup of application resources.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.core.config.settings import settings
from src.core.dependencies.governance import get_counter_store, get_request_governor
from src.core.logging import logger


def create_lifespan_manager():
    """Create the application lifespan manager.

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager that handles startup and shutdown events.

        Builds the request governor so that configuration errors surface at
        startup, and releases the counter store's connections on shutdown.

        Args:
            app (FastAPI): The FastAPI application instance
        """
        # Startup
        governor = get_request_governor()
        logger.info(
            "application_startup",
            env=settings.APP_ENV,
            version=settings.VERSION,
            runtime_mode=settings.runtime_mode.value,
            rate_limit_backend=settings.RATE_LIMIT_BACKEND,
            policies=sorted(governor.policies),
        )

        yield

        # Shutdown
        await get_counter_store().close()
        logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan
