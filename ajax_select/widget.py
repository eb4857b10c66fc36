"""Client side of the select fields.

The widgets consume the payload a field renders, search its endpoint while the
user types and keep the hidden form value in sync with the selection. They
hold no UI of their own; a host (a terminal, a test, a server-side preview)
feeds keystrokes in through :meth:`on_input` and reads the state back.

Searches are debounced, and a response is only applied if no newer search has
been started in the meantime.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

import httpx

from .config import settings
from .errors import SearchRequestError
from .i18n import translate
from .models import FieldPayload, MultiSelectFieldConfig, SearchFieldConfig, SelectFieldConfig
from .values import Record, decode_identifier, decode_record, decode_records, encode_value, is_record, record_key

logger = logging.getLogger(__name__)


class SearchClient:
    """Async client for the ``?query=`` / ``?id=`` search protocol."""

    def __init__(
        self,
        endpoint: str,
        get_vars: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        base_url: str = "",
        timeout: float | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.get_vars = dict(get_vars or {})
        self.headers = dict(headers or {})
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, params: Mapping[str, Any]) -> Any:
        try:
            response = await self._http().get(
                self.endpoint, params={**self.get_vars, **params}, headers=self.headers
            )
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

    async def search(self, query: str) -> List[Any]:
        data = await self._get({"query": query})
        if not isinstance(data, list):
            raise SearchRequestError(f"Search endpoint {self.endpoint} did not return a JSON array")
        return data

    async def lookup(self, identifier: Any) -> Optional[Record]:
        data = await self._get({"id": str(identifier)})
        if isinstance(data, list):
            data = data[0] if data else None
        return dict(data) if is_record(data) else None


class Debouncer:
    """Runs the most recently scheduled action once ``delay`` seconds have passed."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, action: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(action))

    async def _run(self, action: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.delay)
        await action()

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def wait(self) -> None:
        while self.pending:
            await asyncio.gather(self._task, return_exceptions=True)
        task = self._task
        if task is not None and not task.cancelled() and task.exception() is not None:
            raise task.exception()


PayloadInput = Union[str, bytes, Mapping[str, Any], FieldPayload]


def _parse_payload(payload: PayloadInput) -> FieldPayload:
    if isinstance(payload, FieldPayload):
        return payload
    if isinstance(payload, (str, bytes)):
        return FieldPayload.model_validate_json(payload)
    return FieldPayload.model_validate(payload)


class _SearchBox:
    config_model = SearchFieldConfig

    def __init__(
        self,
        payload: PayloadInput,
        client: SearchClient | None = None,
        http_client: httpx.AsyncClient | None = None,
        debounce: float | None = None,
    ) -> None:
        self.payload = _parse_payload(payload)
        self.config = self.config_model.model_validate(self.payload.config)
        self.lang = self.payload.lang
        self.client = client or SearchClient(
            self.config.searchEndpoint,
            get_vars=self.config.getVars,
            headers=self.config.headers,
            client=http_client,
        )
        self.debouncer = Debouncer(settings.debounce_ms / 1000 if debounce is None else debounce)
        self.query = ""
        self.results: List[Record] = []
        self.loading = False
        self.is_open = False
        self.error: Optional[str] = None
        self._sequence = 0

    @classmethod
    def from_payload(cls, payload: PayloadInput, **kwargs: Any):
        return cls(payload, **kwargs)

    @property
    def name(self) -> str:
        return self.payload.name

    @property
    def placeholder(self) -> str:
        return self.config.placeholder

    def on_input(self, text: str) -> None:
        """Handle the search box content changing to ``text``."""
        self.query = text
        if len(text) < self.config.minSearchChars:
            self.debouncer.cancel()
            self._invalidate()
            self.results = []
            self.loading = False
            self.is_open = False
            self.error = None
            return
        self.debouncer.schedule(lambda: self._run_search(text))

    async def settle(self) -> None:
        """Wait until no debounced search is pending."""
        await self.debouncer.wait()

    async def search_now(self, query: str | None = None) -> None:
        if query is not None:
            self.query = query
        self.debouncer.cancel()
        await self._run_search(self.query)

    async def retry(self) -> None:
        await self.search_now(self.query)

    async def aclose(self) -> None:
        self.debouncer.cancel()
        await self.client.aclose()

    def _invalidate(self) -> int:
        self._sequence += 1
        return self._sequence

    async def _run_search(self, query: str) -> None:
        sequence = self._invalidate()
        self.loading = True
        self.error = None
        try:
            results = await self.client.search(query)
        except SearchRequestError as exc:
            if sequence != self._sequence:
                logger.debug("Ignoring failure of stale search %r: %s", query, exc)
                return
            logger.warning("Search %r for field %s failed: %s", query, self.name, exc)
            self.results = []
            self.error = translate("SEARCH_FAILED", self.lang)
            self.loading = False
            self.is_open = True
            return
        if sequence != self._sequence:
            logger.debug("Discarding stale results for %r", query)
            return
        self.results = self._usable(results)
        self.loading = False
        self.is_open = True
        logger.debug("search field=%s q=%r hits=%s", self.name, query, len(self.results))

    def _usable(self, results: List[Any]) -> List[Record]:
        usable = []
        for item in results:
            if is_record(item):
                usable.append(dict(item))
            else:
                logger.warning("Dropping search result without id: %r", item)
        return usable

    def label_for(self, record: Mapping[str, Any]) -> str:
        title = record.get("title")
        return str(title) if title not in (None, "") else str(record.get("id"))

    def result_labels(self) -> List[str]:
        return [self.label_for(record) for record in self.results]

    def hint(self) -> Optional[str]:
        """Status line below the search box, if any."""
        if self.query and len(self.query) < self.config.minSearchChars:
            return translate("MIN_CHARS", self.lang, count=self.config.minSearchChars)
        if self.error:
            return self.error
        if self.is_open and not self.loading and not self.results:
            return translate("NO_RESULTS", self.lang)
        return None

    def _reset_search(self) -> None:
        self.debouncer.cancel()
        self._invalidate()
        self.query = ""
        self.results = []
        self.loading = False
        self.is_open = False


class SelectWidget(_SearchBox):
    config_model = SelectFieldConfig

    def __init__(self, payload: PayloadInput, **kwargs: Any) -> None:
        super().__init__(payload, **kwargs)
        self.value: Union[Record, str, None]
        if self.config.idOnlyMode:
            self.value = decode_identifier(self.payload.value)
            self.selected_record: Optional[Record] = None
        else:
            self.value = decode_record(self.payload.value)
            self.selected_record = self.value

    @property
    def id_only(self) -> bool:
        return self.config.idOnlyMode

    @property
    def display_label(self) -> Optional[str]:
        return self.label_for(self.selected_record) if self.selected_record else None

    @property
    def form_value(self) -> str:
        return encode_value(self.value)

    async def hydrate(self) -> Optional[Record]:
        """Make sure the stored selection can be displayed.

        Full records are shown as they are; a bare identifier is resolved with
        an ``?id=`` lookup first.
        """
        if self.selected_record is not None or self.value is None:
            return self.selected_record
        try:
            record = await self.client.lookup(self.value)
        except SearchRequestError as exc:
            logger.warning("Lookup of %r for field %s failed: %s", self.value, self.name, exc)
            record = None
        if record is None:
            self.error = translate("LOOKUP_FAILED", self.lang)
            return None
        self.selected_record = record
        return record

    def select(self, record: Mapping[str, Any]) -> None:
        if not is_record(record):
            raise ValueError(f"Cannot select a result without id: {record!r}")
        self.selected_record = dict(record)
        self.value = record_key(record) if self.id_only else dict(record)
        self.error = None
        self._reset_search()

    def select_index(self, index: int) -> None:
        self.select(self.results[index])

    def clear(self) -> None:
        self.value = None
        self.selected_record = None


class MultiSelectWidget(_SearchBox):
    config_model = MultiSelectFieldConfig

    def __init__(self, payload: PayloadInput, **kwargs: Any) -> None:
        super().__init__(payload, **kwargs)
        self.value: List[Record] = decode_records(self.payload.value) or []

    @property
    def display_fields(self) -> Mapping[str, str]:
        return self.config.displayFields

    @property
    def form_value(self) -> str:
        return encode_value(self.value)

    def is_selected(self, identifier: Any) -> bool:
        key = str(identifier)
        return any(record_key(record) == key for record in self.value)

    def label_for(self, record: Mapping[str, Any]) -> str:
        parts = [str(record[key]) for key in self.display_fields if record.get(key) not in (None, "")]
        return " | ".join(parts) if parts else super().label_for(record)

    def rows(self, record: Mapping[str, Any]) -> List[Tuple[str, Any]]:
        return [(label, record.get(key)) for key, label in self.display_fields.items()]

    def selected_rows(self) -> List[List[Tuple[str, Any]]]:
        return [self.rows(record) for record in self.value]

    def select(self, record: Mapping[str, Any]) -> bool:
        """Add ``record`` to the selection; returns False if it was already selected."""
        if not is_record(record):
            raise ValueError(f"Cannot select a result without id: {record!r}")
        if self.is_selected(record["id"]):
            return False
        self.value.append(dict(record))
        self.error = None
        self._reset_search()
        return True

    def select_index(self, index: int) -> bool:
        return self.select(self.results[index])

    def remove(self, identifier: Any) -> bool:
        key = str(identifier)
        remaining = [record for record in self.value if record_key(record) != key]
        removed = len(remaining) != len(self.value)
        self.value = remaining
        return removed

    async def hydrate(self) -> List[Record]:
        """Fetch details for selected records that lack any of the display fields."""
        for index, record in enumerate(self.value):
            if all(key in record for key in self.display_fields):
                continue
            try:
                details = await self.client.lookup(record["id"])
            except SearchRequestError as exc:
                logger.warning("Lookup of %r for field %s failed: %s", record["id"], self.name, exc)
                details = None
            if details is None:
                self.error = translate("LOOKUP_FAILED", self.lang)
                continue
            self.value[index] = {**record, **details}
        return self.value
