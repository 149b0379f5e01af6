"""Account repository backends and the factory that selects one."""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..domain.contracts import AccountRepository
from ..errors import StoreError
from .document import DocumentRepository, VersionedItem
from .elasticsearch_account import AUTH_ACCOUNT_INDEX, ElasticsearchAccountRepository
from .memory_account import InMemoryAccountRepository

logger = logging.getLogger(__name__)

BACKENDS = ("elasticsearch", "memory")


def build_account_repository(settings: Settings | None = None) -> AccountRepository:
    """Construct the repository variant named by ``settings.backend``."""
    settings = settings or get_settings()
    if settings.backend == "memory":
        logger.info("using in-memory account repository")
        return InMemoryAccountRepository()
    if settings.backend == "elasticsearch":
        repository = ElasticsearchAccountRepository(settings=settings)
        if settings.ensure_index:
            try:
                repository.ensure_index()
            except StoreError:
                repository.close()
                raise
        return repository
    raise ValueError(f"unknown account store backend '{settings.backend}', expected one of {BACKENDS}")


__all__ = [
    "AUTH_ACCOUNT_INDEX",
    "BACKENDS",
    "DocumentRepository",
    "ElasticsearchAccountRepository",
    "InMemoryAccountRepository",
    "VersionedItem",
    "build_account_repository",
]
