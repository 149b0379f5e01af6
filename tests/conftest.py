from __future__ import annotations

import copy
import itertools
from datetime import datetime, timezone
from typing import Any

import pytest
from elastic_transport import ApiResponseMeta, ConnectionError as TransportConnectionError, HttpHeaders, NodeConfig
from elasticsearch import ConflictError, NotFoundError

from account_store.config import Settings
from account_store.domain.account import Account
from account_store.repositories import ElasticsearchAccountRepository, InMemoryAccountRepository


def _meta(status: int) -> ApiResponseMeta:
    return ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )


def _not_found(message: str) -> NotFoundError:
    return NotFoundError(message, _meta(404), {"error": {"type": message}, "status": 404})


def _keep_alive_seconds(value: str) -> float:
    units = {"ms": 0.001, "s": 1, "m": 60}
    for suffix in ("ms", "s", "m"):
        if value.endswith(suffix):
            return float(value[: -len(suffix)]) * units[suffix]
    return float(value)


class FakeIndices:
    def __init__(self, client: "FakeElasticsearch") -> None:
        self._client = client
        self.created: dict[str, Any] = {}

    def exists(self, *, index: str) -> bool:
        self._client._check_available()
        return index in self._client._indices

    def create(self, *, index: str, mappings: Any = None) -> dict[str, Any]:
        self._client._check_available()
        self._client._indices.setdefault(index, {})
        self.created[index] = mappings
        return {"acknowledged": True, "index": index}


class FakeElasticsearch:
    """In-memory stand-in for the subset of ``elasticsearch.Elasticsearch`` used by repositories."""

    def __init__(self, *, scroll_delay: float = 0.0) -> None:
        self._indices: dict[str, dict[str, dict[str, Any]]] = {}
        self._seq = itertools.count()
        self._scrolls: dict[str, dict[str, Any]] = {}
        self._scroll_ids = itertools.count(1)
        self.indices = FakeIndices(self)
        self.clock = 0.0
        self.scroll_delay = scroll_delay
        self.available = True
        self.closed = False
        self.search_calls: list[dict[str, Any]] = []
        self.scroll_calls = 0
        self.cleared_scrolls: list[str] = []

    def _check_available(self) -> None:
        if not self.available:
            raise TransportConnectionError("connection refused")

    def _docs(self, index: str) -> dict[str, dict[str, Any]]:
        return self._indices.setdefault(index, {})

    def ping(self) -> bool:
        return self.available

    def close(self) -> None:
        self.closed = True

    def index(self, *, index: str, id: str, document: dict[str, Any]) -> dict[str, Any]:
        self._check_available()
        docs = self._docs(index)
        result = "updated" if id in docs else "created"
        docs.pop(id, None)
        docs[id] = {"source": copy.deepcopy(document), "seq_no": next(self._seq)}
        return {"_index": index, "_id": id, "result": result}

    def get(self, *, index: str, id: str) -> dict[str, Any]:
        self._check_available()
        stored = self._indices.get(index, {}).get(id)
        if stored is None:
            raise _not_found("document_missing_exception")
        return {
            "_index": index,
            "_id": id,
            "found": True,
            "_seq_no": stored["seq_no"],
            "_primary_term": 1,
            "_source": copy.deepcopy(stored["source"]),
        }

    def exists(self, *, index: str, id: str) -> bool:
        self._check_available()
        return id in self._indices.get(index, {})

    def update(
        self,
        *,
        index: str,
        id: str,
        doc: dict[str, Any],
        if_seq_no: int | None = None,
        if_primary_term: int | None = None,
    ) -> dict[str, Any]:
        self._check_available()
        stored = self._indices.get(index, {}).get(id)
        if stored is None:
            raise _not_found("document_missing_exception")
        if if_seq_no is not None and (if_seq_no != stored["seq_no"] or if_primary_term != 1):
            raise ConflictError(
                "version_conflict_engine_exception", _meta(409), {"error": "version conflict"}
            )
        merged = {**stored["source"], **copy.deepcopy(doc)}
        if merged == stored["source"]:
            return {"_index": index, "_id": id, "result": "noop"}
        stored["source"] = merged
        stored["seq_no"] = next(self._seq)
        return {"_index": index, "_id": id, "result": "updated"}

    def delete(self, *, index: str, id: str) -> dict[str, Any]:
        self._check_available()
        if self._indices.get(index, {}).pop(id, None) is None:
            raise _not_found("not_found")
        return {"_index": index, "_id": id, "result": "deleted"}

    def _matches(self, source: dict[str, Any], query: dict[str, Any]) -> bool:
        if "match_all" in query:
            return True
        if "term" in query:
            ((field, value),) = query["term"].items()
            return source.get(field) == value
        raise AssertionError(f"unsupported query {query}")

    def search(
        self,
        *,
        index: str,
        query: dict[str, Any],
        size: int = 10,
        scroll: str | None = None,
    ) -> dict[str, Any]:
        self._check_available()
        self.search_calls.append({"index": index, "query": query, "size": size, "scroll": scroll})
        hits = [
            {"_index": index, "_id": doc_id, "_source": copy.deepcopy(stored["source"])}
            for doc_id, stored in self._indices.get(index, {}).items()
            if self._matches(stored["source"], query)
        ]
        response: dict[str, Any] = {"hits": {"total": {"value": len(hits)}, "hits": hits[:size]}}
        if scroll is not None:
            scroll_id = f"scroll-{next(self._scroll_ids)}"
            self._scrolls[scroll_id] = {
                "remaining": hits[size:],
                "size": size,
                "keep_alive": _keep_alive_seconds(scroll),
                "touched": self.clock,
            }
            response["_scroll_id"] = scroll_id
        return response

    def scroll(self, *, scroll_id: str, scroll: str) -> dict[str, Any]:
        self._check_available()
        self.scroll_calls += 1
        self.clock += self.scroll_delay
        context = self._scrolls.get(scroll_id)
        if context is None or self.clock - context["touched"] > context["keep_alive"]:
            self._scrolls.pop(scroll_id, None)
            raise _not_found("search_context_missing_exception")
        page = context["remaining"][: context["size"]]
        context["remaining"] = context["remaining"][context["size"]:]
        context["touched"] = self.clock
        context["keep_alive"] = _keep_alive_seconds(scroll)
        return {"_scroll_id": scroll_id, "hits": {"hits": page}}

    def clear_scroll(self, *, scroll_id: str) -> dict[str, Any]:
        self._check_available()
        self._scrolls.pop(scroll_id, None)
        self.cleared_scrolls.append(scroll_id)
        return {"succeeded": True, "num_freed": 1}


@pytest.fixture
def settings() -> Settings:
    return Settings(backend="memory", scroll_size=3, search_size=5000, scroll_keep_alive="30s")


@pytest.fixture
def es_client() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def es_repository(es_client, settings) -> ElasticsearchAccountRepository:
    return ElasticsearchAccountRepository(es_client, settings=settings)


@pytest.fixture(params=["memory", "elasticsearch"])
def repository(request, settings):
    """Each contract test runs once per backend."""
    if request.param == "memory":
        return InMemoryAccountRepository()
    return ElasticsearchAccountRepository(FakeElasticsearch(), settings=settings)


@pytest.fixture
def make_account():
    def _make(username: str = "user@example.com", **overrides: Any) -> Account:
        values: dict[str, Any] = {
            "username": username,
            "encoded_password": "$2b$12$encoded",
            "login_attempts_left": 3,
            "first_name": "Ada",
            "last_name": "Lovelace",
            "authorities": frozenset({"ROLE_USER"}),
        }
        values.update(overrides)
        return Account(**values)

    return _make


@pytest.fixture
def link_date() -> datetime:
    return datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)
