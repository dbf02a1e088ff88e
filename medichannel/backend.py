"""Backend selection.

A backend is anything with ``execute(operation)`` over query operations.
Two exist: the hosted REST backend and the in-memory MockStore. Which one is
used depends only on whether backend credentials are configured.
"""
from typing import Optional, Protocol

from medichannel.config import Settings, load_settings
from medichannel.logging_config import get_logger
from medichannel.mock_store import MockStore
from medichannel.query import Operation
from medichannel.rest_backend import RestBackend

logger = get_logger(__name__)


class Backend(Protocol):
    """Query interpreter contract shared by every backend."""

    def execute(self, operation: Operation):
        ...


def create_backend(settings: Optional[Settings] = None) -> Backend:
    """
    Build the backend matching the configuration.

    Args:
        settings: Deployment settings (default: read from environment)

    Returns:
        RestBackend when URL and key are set, otherwise a seeded MockStore
    """
    settings = settings or load_settings()

    if settings.backend_configured:
        logger.info("backend_selected", backend="rest", url=settings.backend_url)
        return RestBackend(settings.backend_url, settings.backend_api_key)

    logger.info("backend_selected", backend="mock", reason="backend credentials not set")
    return MockStore(seed=True)


def is_mock(backend: Backend) -> bool:
    """True when running in demo mode against the in-memory store."""
    return isinstance(backend, MockStore)
