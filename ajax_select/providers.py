"""Search providers: where a field gets its results from.

Every source of search results implements :class:`SearchProvider`. A
host-supplied callback, an external HTTP endpoint, an in-memory list and an
Elasticsearch index are all just different providers.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import httpx
from elasticsearch import Elasticsearch
from elasticsearch.exceptions import NotFoundError

from .config import settings
from .context import SearchRequestContext
from .errors import InvalidCallbackError, SearchRequestError
from .i18n import translate
from .matching import normalize_text, partial_match
from .models import SearchResult
from .values import Record, record_key

logger = logging.getLogger(__name__)

SearchCallback = Callable[[Optional[str], SearchRequestContext], Any]


@runtime_checkable
class SearchProvider(Protocol):
    def search(self, query: str | None, request: SearchRequestContext | None = None) -> List[Record]: ...

    def lookup_by_id(self, identifier: str, request: SearchRequestContext | None = None) -> Optional[Record]: ...


def is_search_provider(candidate: Any) -> bool:
    return callable(getattr(candidate, "search", None))


def _as_results(results: Any) -> List[Record]:
    if results is None:
        return []
    if isinstance(results, Mapping):
        return [dict(results)]
    return list(results)


def _as_single(result: Any) -> Optional[Record]:
    if result is None:
        return None
    if isinstance(result, Mapping):
        return dict(result)
    results = list(result)
    return dict(results[0]) if results else None


class CallbackSearchProvider:
    """Delegates to ``callback(query, request)``.

    Id lookups call the same callback with a request carrying an ``id``
    parameter; supporting that is up to the callback.
    """

    def __init__(self, callback: SearchCallback) -> None:
        if not callback or not callable(callback):
            raise InvalidCallbackError(translate("ERROR_INVALID_CALLBACK"))
        self.callback = callback

    def search(self, query: str | None, request: SearchRequestContext | None = None) -> List[Record]:
        if request is None:
            request = SearchRequestContext.for_query(query)
        return _as_results(self.callback(query, request))

    def lookup_by_id(self, identifier: str, request: SearchRequestContext | None = None) -> Optional[Record]:
        if request is None or request.identifier != str(identifier):
            request = SearchRequestContext.for_id(identifier)
        return _as_single(self.callback(request.query, request))


class HttpSearchProvider:
    """Forwards searches to an external endpoint speaking the ``?query=`` / ``?id=`` protocol."""

    def __init__(
        self,
        endpoint: str,
        get_vars: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.get_vars = dict(get_vars or {})
        self.headers = dict(headers or {})
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._client = client

    def _get(self, params: Mapping[str, Any]) -> Any:
        query_params = {**self.get_vars, **params}
        try:
            if self._client is not None:
                response = self._client.get(self.endpoint, params=query_params, headers=self.headers)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(self.endpoint, params=query_params, headers=self.headers)
        except httpx.HTTPError as exc:
            raise SearchRequestError(f"Search request to {self.endpoint} failed: {exc}") from exc
        if response.is_error:
            raise SearchRequestError(
                f"Search endpoint {self.endpoint} answered with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise SearchRequestError(f"Search endpoint {self.endpoint} returned invalid JSON") from exc

    def search(self, query: str | None, request: SearchRequestContext | None = None) -> List[Record]:
        data = self._get({"query": query or ""})
        if not isinstance(data, list):
            raise SearchRequestError(f"Search endpoint {self.endpoint} did not return a JSON array")
        return data

    def lookup_by_id(self, identifier: str, request: SearchRequestContext | None = None) -> Optional[Record]:
        data = self._get({"id": str(identifier)})
        if isinstance(data, (Mapping, list)):
            return _as_single(data)
        return None


class ListSearchProvider:
    """Partial, accent-insensitive matching over a fixed list of records."""

    def __init__(
        self,
        records: Iterable[Mapping[str, Any]],
        search_fields: Sequence[str] = ("title",),
        limit: int | None = None,
    ) -> None:
        self.records = []
        for record in records:
            # Fails early on records without an id.
            SearchResult.model_validate(record)
            self.records.append(dict(record))
        self.search_fields = tuple(search_fields)
        self.limit = limit

    def search(self, query: str | None, request: SearchRequestContext | None = None) -> List[Record]:
        hits = [
            record
            for record in self.records
            if any(partial_match(query, record.get(name)) for name in self.search_fields)
        ]
        logger.debug("list search q=%r normalized=%r hits=%s", query, normalize_text(query), len(hits))
        return hits[: self.limit] if self.limit else hits

    def lookup_by_id(self, identifier: str, request: SearchRequestContext | None = None) -> Optional[Record]:
        key = str(identifier)
        return next((record for record in self.records if record_key(record) == key), None)


@lru_cache(maxsize=1)
def default_es_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", settings.es_host)
    return Elasticsearch(settings.es_host)


DEFAULT_ES_FIELDS = ["title^3", "title.autocomplete^1.5", "description"]


def _build_query(query: str, fields: List[str], limit: int) -> dict:
    should: List[dict] = [
        {
            "multi_match": {
                "query": query,
                "fields": fields,
                "type": "most_fields",
                "operator": "and",
                "fuzziness": "AUTO",
                "boost": 2.0,
            }
        },
        {
            "multi_match": {
                "query": query,
                "fields": fields,
                "type": "phrase_prefix",
                "boost": 1.5,
            }
        },
    ]
    query_body = {
        "size": limit,
        "query": {
            "bool": {
                "should": should,
                "minimum_should_match": 1,
            }
        },
    }
    logger.debug("ES query payload=%s", query_body)
    return query_body


class ElasticsearchSearchProvider:
    """Fuzzy search over an Elasticsearch index; documents become result records."""

    def __init__(
        self,
        es: Elasticsearch | None = None,
        index: str | None = None,
        fields: List[str] | None = None,
        limit: int | None = None,
        title_field: str = "title",
    ) -> None:
        self.es = es if es is not None else default_es_client()
        self.index = index or settings.es_index
        self.fields = fields or DEFAULT_ES_FIELDS
        self.limit = limit or settings.search_result_size
        self.title_field = title_field

    def _to_record(self, doc_id: Any, source: Mapping[str, Any]) -> Record:
        record: Record = {"id": source.get("id", doc_id), "title": source.get(self.title_field)}
        for key, value in source.items():
            record.setdefault(key, value)
        return record

    def search(self, query: str | None, request: SearchRequestContext | None = None) -> List[Record]:
        if not query:
            return []
        response = self.es.search(index=self.index, body=_build_query(query, self.fields, self.limit))
        hits = response.get("hits", {}).get("hits", [])
        results = [self._to_record(hit.get("_id"), hit.get("_source", {})) for hit in hits]
        logger.info("es search index=%s q=%r hits=%s took=%sms", self.index, query, len(results), response.get("took", 0))
        return results

    def lookup_by_id(self, identifier: str, request: SearchRequestContext | None = None) -> Optional[Record]:
        try:
            doc = self.es.get(index=self.index, id=str(identifier))
        except NotFoundError:
            logger.info("es lookup index=%s id=%r not found", self.index, identifier)
            return None
        return self._to_record(doc.get("_id", identifier), doc.get("_source", {}))
