"""Construction of the shared Elasticsearch client handle."""

from __future__ import annotations

import logging

from elasticsearch import Elasticsearch

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_client(settings: Settings | None = None) -> Elasticsearch:
    """Create the long-lived client used by every repository operation.

    The returned client owns a connection pool; callers must ``close()`` it
    on shutdown.
    """
    settings = settings or get_settings()
    logger.info("connecting to document store at %s", settings.elastic_url)
    return Elasticsearch(
        settings.elastic_url,
        basic_auth=settings.basic_auth,
        request_timeout=settings.elastic_request_timeout,
    )
