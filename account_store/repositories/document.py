"""Generic Elasticsearch-backed document repository."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

from elasticsearch import ApiError, ConflictError, Elasticsearch, NotFoundError, TransportError

from ..client import build_client
from ..config import Settings, get_settings
from ..errors import (
    ConcurrentUpdateError,
    DocumentMissingError,
    InvalidArgumentError,
    ScrollExpiredError,
    StoreError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STORE_ERRORS = (ApiError, TransportError)


@dataclass(frozen=True, slots=True)
class VersionedItem(Generic[T]):
    """A record together with the sequence number/primary term it was read at."""

    record: T
    seq_no: int
    primary_term: int


class DocumentRepository(ABC, Generic[T]):
    """CRUD, search and full-scan primitives over one named index.

    ``index_item`` replaces the whole document; ``update_item`` merges only the
    supplied fields and leaves the rest of the stored document untouched.
    """

    index_name: str
    index_mappings: Mapping[str, Any] | None = None

    def __init__(self, client: Elasticsearch | None = None, *, settings: Settings | None = None) -> None:
        """Keep the shared client; build and own one from settings when none is injected."""
        settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client if client is not None else build_client(settings)
        self._search_size = settings.search_size
        self._scroll_size = settings.scroll_size
        self._scroll_keep_alive = settings.scroll_keep_alive

    @abstractmethod
    def _to_record(self, source: Mapping[str, Any]) -> T:
        """Map a stored ``_source`` body to the record type."""

    @abstractmethod
    def _to_document(self, record: T) -> dict[str, Any]:
        """Map a record to the body written by ``index_item``."""

    def _map_source(self, doc_id: str, source: Mapping[str, Any]) -> T:
        # pydantic ValidationError and InvalidArgumentError are both ValueErrors
        try:
            return self._to_record(source)
        except ValueError as exc:
            logger.warning("%s: stored document '%s' is malformed: %s", self.index_name, doc_id, exc)
            raise StoreError(f"stored document '{doc_id}' in '{self.index_name}' is malformed") from exc

    def close(self) -> None:
        """Release the client when this repository created it."""
        if self._owns_client:
            self._client.close()

    def ping(self) -> bool:
        return bool(self._client.ping())

    def ensure_index(self) -> bool:
        """Create the index with ``index_mappings`` when it is missing."""
        try:
            if self._client.indices.exists(index=self.index_name):
                return False
            self._client.indices.create(index=self.index_name, mappings=self.index_mappings)
        except _STORE_ERRORS as exc:
            logger.warning("ensure_index/%s failed: %s", self.index_name, exc)
            raise StoreError(f"could not create index '{self.index_name}'") from exc
        logger.info("created index '%s'", self.index_name)
        return True

    def index_item(self, doc_id: str, body: T, index: str | None = None) -> str:
        """Create or fully replace the document stored at ``doc_id``."""
        index = index or self.index_name
        logger.debug("indexing %s into %s...", doc_id, index)
        try:
            response = self._client.index(index=index, id=doc_id, document=self._to_document(body))
        except _STORE_ERRORS as exc:
            logger.warning("index/%s: failed to index '%s': %s", index, doc_id, exc)
            raise StoreError(f"could not index '{doc_id}' into '{index}'") from exc
        logger.debug("index response for %s: %s", doc_id, response["result"])
        return response["result"]

    def get_item(self, doc_id: str) -> T | None:
        """Return the record stored at ``doc_id`` or ``None`` when it does not exist."""
        versioned = self.get_versioned_item(doc_id)
        return versioned.record if versioned is not None else None

    def get_versioned_item(self, doc_id: str) -> VersionedItem[T] | None:
        if not doc_id:
            raise InvalidArgumentError("get_item() invalid args: doc_id is empty")
        try:
            response = self._client.get(index=self.index_name, id=doc_id)
        except NotFoundError:
            logger.debug("getItem/%s: item was not found '%s'", self.index_name, doc_id)
            return None
        except _STORE_ERRORS as exc:
            logger.warning("getItem/%s: failed to retrieve '%s': %s", self.index_name, doc_id, exc)
            raise StoreError(f"could not get '{doc_id}' from '{self.index_name}'") from exc

        logger.debug("getItem/%s: successfully retrieved item '%s'", self.index_name, doc_id)
        return VersionedItem(
            record=self._map_source(doc_id, response["_source"]),
            seq_no=response["_seq_no"],
            primary_term=response["_primary_term"],
        )

    def exists(self, doc_id: str) -> bool:
        if not doc_id:
            raise InvalidArgumentError("exists() invalid args: doc_id is empty")
        try:
            return bool(self._client.exists(index=self.index_name, id=doc_id))
        except _STORE_ERRORS as exc:
            raise StoreError(f"could not probe '{doc_id}' in '{self.index_name}'") from exc

    def update_item(
        self,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        if_seq_no: int | None = None,
        if_primary_term: int | None = None,
    ) -> str:
        """Merge ``fields`` into the stored document.

        When ``if_seq_no``/``if_primary_term`` are given the write only succeeds
        if the document has not changed since it was read at that version.
        """
        if not doc_id:
            raise InvalidArgumentError("update_item() invalid args: doc_id is empty")
        versioning: dict[str, int] = {}
        if if_seq_no is not None and if_primary_term is not None:
            versioning = {"if_seq_no": if_seq_no, "if_primary_term": if_primary_term}
        try:
            response = self._client.update(index=self.index_name, id=doc_id, doc=dict(fields), **versioning)
        except NotFoundError as exc:
            logger.warning("update/%s: document '%s' is missing", self.index_name, doc_id)
            raise DocumentMissingError(self.index_name, doc_id) from exc
        except ConflictError as exc:
            logger.warning("update/%s: version conflict on '%s'", self.index_name, doc_id)
            raise ConcurrentUpdateError(self.index_name, doc_id) from exc
        except _STORE_ERRORS as exc:
            logger.warning("update/%s: failed to update '%s': %s", self.index_name, doc_id, exc)
            raise StoreError(f"could not update '{doc_id}' in '{self.index_name}'") from exc
        return response["result"]

    def delete_item(self, doc_id: str) -> str:
        if not doc_id:
            raise InvalidArgumentError("delete_item() invalid args: doc_id is empty")
        logger.debug("deleting: %s", doc_id)
        try:
            response = self._client.delete(index=self.index_name, id=doc_id)
        except NotFoundError as exc:
            raise DocumentMissingError(self.index_name, doc_id) from exc
        except _STORE_ERRORS as exc:
            logger.warning("delete/%s: failed to delete '%s': %s", self.index_name, doc_id, exc)
            raise StoreError(f"could not delete '{doc_id}' from '{self.index_name}'") from exc
        logger.debug("delete response for %s: %s", doc_id, response["result"])
        return response["result"]

    def search(self, query: Mapping[str, Any] | None) -> list[T]:
        """Return up to ``search_size`` records matching ``query`` in backend order."""
        if query is None:
            raise InvalidArgumentError("search() invalid args: query is None")
        logger.debug("search(): retrieving for query %s", query)
        try:
            response = self._client.search(index=self.index_name, query=dict(query), size=self._search_size)
        except _STORE_ERRORS as exc:
            logger.warning("search/%s failed: %s", self.index_name, exc)
            raise StoreError(f"search on '{self.index_name}' failed") from exc

        items = [self._map_source(hit["_id"], hit["_source"]) for hit in response["hits"]["hits"]]
        logger.debug("search(): successfully retrieved %d items for query", len(items))
        return items

    def get_all_items(self) -> list[T]:
        """Return every record in the index using a scroll cursor.

        Pages are requested until one comes back empty; the number of records
        is never assumed up front. Each page keeps the cursor alive for
        ``scroll_keep_alive``; a page requested after that raises
        ``ScrollExpiredError``.
        """
        items: list[T] = []
        try:
            response = self._client.search(
                index=self.index_name,
                query={"match_all": {}},
                size=self._scroll_size,
                scroll=self._scroll_keep_alive,
            )
        except _STORE_ERRORS as exc:
            logger.warning("getAllItems/%s: initial search failed: %s", self.index_name, exc)
            raise StoreError(f"scan of '{self.index_name}' failed") from exc

        scroll_id = response["_scroll_id"]
        try:
            while True:
                hits = response["hits"]["hits"]
                logger.debug("getAllItems() found %d", len(hits))
                if not hits:
                    break
                items.extend(self._map_source(hit["_id"], hit["_source"]) for hit in hits)
                try:
                    response = self._client.scroll(scroll_id=scroll_id, scroll=self._scroll_keep_alive)
                except NotFoundError as exc:
                    logger.warning("getAllItems/%s: scroll context expired", self.index_name)
                    scroll_id = None
                    raise ScrollExpiredError(
                        f"scroll over '{self.index_name}' expired after {len(items)} items"
                    ) from exc
                except _STORE_ERRORS as exc:
                    raise StoreError(f"scan of '{self.index_name}' failed") from exc
                scroll_id = response["_scroll_id"]
        finally:
            self._clear_scroll(scroll_id)

        return items

    def _clear_scroll(self, scroll_id: str | None) -> None:
        if not scroll_id:
            return
        try:
            self._client.clear_scroll(scroll_id=scroll_id)
        except _STORE_ERRORS as exc:
            logger.warning("failed to clear scroll context on '%s': %s", self.index_name, exc)
