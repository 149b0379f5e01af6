"""Typed failures raised by account repositories.

Backend exceptions are never swallowed: they are translated into a
``StoreError`` (or one of its subclasses) with the client exception chained
as ``__cause__``.
"""

from __future__ import annotations


class AccountStoreError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgumentError(AccountStoreError, ValueError):
    """A required argument was empty or ``None``."""


class RecordNotFoundError(AccountStoreError, LookupError):
    """An operation that must produce a value found no matching record."""


class AlreadyExistsError(AccountStoreError):
    """A record with the same key already exists."""

    def __init__(self, key: str) -> None:
        super().__init__(f"user {key} already exists")
        self.key = key


class StoreError(AccountStoreError):
    """The document store (or the transport to it) reported a failure."""


class DocumentMissingError(StoreError):
    """An update or delete targeted a document that does not exist."""

    def __init__(self, index: str, document_id: str) -> None:
        super().__init__(f"document '{document_id}' not found in '{index}'")
        self.index = index
        self.document_id = document_id


class ScrollExpiredError(StoreError):
    """A scroll continuation handle was rejected, usually after its keep-alive elapsed."""


class ConcurrentUpdateError(StoreError):
    """A version-checked write lost the race against another writer."""

    def __init__(self, index: str, document_id: str) -> None:
        super().__init__(f"document '{document_id}' in '{index}' was modified concurrently")
        self.index = index
        self.document_id = document_id
