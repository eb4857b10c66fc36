"""Server-side select fields.

Usage::

    def search_companies(query, request):
        # Only required if the id only mode is active
        if request.identifier:
            return companies.get(request.identifier)
        return [{"id": c.id, "title": c.name} for c in companies.filter(query)]

    field = (
        AjaxSelectField("Company")
        .set_search_callback(search_companies)
        .set_min_search_chars(2)
    )
    markup = field.field(RenderContext(locale="de_DE", form_name="Form_EditForm"))

:class:`AjaxMultiSelectField` works the same way but stores a list of records
and shows the configured display fields for each selected entry.
"""
from __future__ import annotations

import html
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import settings
from .context import RenderContext, SearchRequestContext
from .errors import InvalidCallbackError, SearchConfigurationError
from .i18n import translate
from .models import FieldPayload, MultiSelectFieldConfig, SearchFieldConfig, SelectFieldConfig
from .providers import (
    CallbackSearchProvider,
    HttpSearchProvider,
    SearchCallback,
    SearchProvider,
    is_search_provider,
)
from .values import (
    Record,
    decode_identifier,
    decode_record,
    decode_records,
    dedupe_records,
    encode_value,
    is_record,
    record_key,
)

logger = logging.getLogger(__name__)

_HTML_ID_RE = re.compile(r"[^A-Za-z0-9_-]+")
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_RE = re.compile(r"([A-Z])([A-Z][a-z])")

DEFAULT_DISPLAY_FIELDS = {"id": "ID", "title": "Title"}


def name_to_label(name: str) -> str:
    """``"MyField"`` -> ``"My Field"``, ``"Parent.HTMLTitle"`` -> ``"HTML Title"``."""
    label = name.rsplit(".", 1)[-1]
    label = _CAMEL_RE.sub(r"\1 \2", label)
    label = _ACRONYM_RE.sub(r"\1 \2", label)
    return label.replace("_", " ").strip()


def html_id(*parts: Optional[str]) -> str:
    joined = "_".join(part for part in parts if part)
    return _HTML_ID_RE.sub("_", joined).strip("_")


class SearchSettings:
    """Search configuration shared by the single and the multi select field."""

    def __init__(self) -> None:
        self.min_search_chars: int = settings.min_search_chars
        self.endpoint: Optional[str] = None
        self.provider: Optional[SearchProvider] = None
        self.placeholder: Optional[str] = None
        self.get_vars: Optional[Dict[str, Any]] = None
        self.headers: Optional[Dict[str, str]] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint or self.provider)

    def set_callback(self, callback: SearchCallback) -> None:
        self.provider = CallbackSearchProvider(callback)

    def set_provider(self, provider: SearchProvider) -> None:
        if not is_search_provider(provider):
            raise InvalidCallbackError(translate("ERROR_INVALID_PROVIDER"))
        self.provider = provider

    def ensure_configured(self, name: str, locale: Optional[str] = None) -> None:
        if not self.is_configured:
            raise SearchConfigurationError(translate("ERROR_SEARCH_CONFIG", locale, name=name))

    def resolve_provider(self, name: str, locale: Optional[str] = None) -> SearchProvider:
        # An explicit endpoint wins over a callback or provider.
        self.ensure_configured(name, locale)
        if self.endpoint:
            return HttpSearchProvider(self.endpoint, get_vars=self.get_vars, headers=self.headers)
        return self.provider

    def config_values(self, search_link: str, locale: Optional[str]) -> Dict[str, Any]:
        return {
            "minSearchChars": self.min_search_chars,
            "searchEndpoint": self.endpoint or search_link,
            "placeholder": self.placeholder or translate("SEARCH_PLACEHOLDER", locale),
            "getVars": self.get_vars,
            "headers": self.headers,
        }


class _AjaxFieldBase(ABC):
    config_model = SearchFieldConfig
    css_class = "ajaxSelectFieldPlaceholder"

    def __init__(self, name: str, title: Optional[str] = None, value: Any = None) -> None:
        self.name = name
        self.title = title if title is not None else name_to_label(name)
        self.search_settings = SearchSettings()
        self.value = ""
        self.set_value(value)

    def set_endpoint(self, endpoint: Optional[str]):
        """Send all search requests to ``endpoint`` instead of this field's own search action.

        Use either an endpoint or a search callback. If both are set, the
        endpoint is preferred.
        """
        self.search_settings.endpoint = endpoint or None
        return self

    def set_search_callback(self, callback: SearchCallback):
        """Call ``callback(query, request)`` on search requests.

        The callback has to return a list of results, each of them with at
        least an ``id`` and a ``title``.
        """
        self.search_settings.set_callback(callback)
        return self

    def set_search_provider(self, provider: SearchProvider):
        self.search_settings.set_provider(provider)
        return self

    def set_min_search_chars(self, chars: int):
        self.search_settings.min_search_chars = int(chars)
        return self

    def set_placeholder(self, placeholder: Optional[str]):
        self.search_settings.placeholder = placeholder
        return self

    def set_get_vars(self, get_vars: Optional[Mapping[str, Any]]):
        """Extra query parameters added to each search request, as ``{"key": "value"}``."""
        self.search_settings.get_vars = dict(get_vars) if get_vars else None
        return self

    def set_search_headers(self, headers: Optional[Mapping[str, Any]]):
        """Extra request headers sent with each search request, as ``{"key": "value"}``."""
        # Header values go on the wire as strings.
        self.search_settings.headers = {str(key): str(value) for key, value in headers.items()} if headers else None
        return self

    def set_value(self, value: Any):
        if isinstance(value, str):
            self.value = value
        else:
            self.value = self.encode_selection(value)
        return self

    def encode_selection(self, selection: Any) -> str:
        return encode_value(selection)

    @abstractmethod
    def value_for_component(self) -> Any:
        """The stored selection in the shape the widget expects."""

    @abstractmethod
    def data_value(self) -> Any:
        """The stored selection for the host's data layer."""

    def form_value(self) -> str:
        """The persisted value re-encoded; malformed input comes back empty."""
        return self.encode_selection(self.value_for_component())

    def extra_config(self) -> Dict[str, Any]:
        return {}

    def id(self, context: RenderContext) -> str:
        return html_id(context.form_name, self.name)

    def link(self, context: RenderContext, action: Optional[str] = None) -> str:
        return context.field_link(self.name, action)

    def get_payload(self, context: RenderContext) -> FieldPayload:
        """The payload/config handed to the client widget."""
        self.search_settings.ensure_configured(self.name, context.locale)
        config = self.config_model(
            **self.search_settings.config_values(self.link(context, "search"), context.locale),
            **self.extra_config(),
        )
        return FieldPayload(
            id=self.id(context),
            name=self.name,
            value=self.value_for_component(),
            lang=context.lang,
            config=config.model_dump(),
        )

    def get_payload_json(self, context: RenderContext) -> str:
        return json.dumps(self.get_payload(context).model_dump(), separators=(",", ":"))

    def field(self, context: RenderContext) -> str:
        """Render the widget placeholder together with the hidden form value."""
        payload = self.get_payload_json(context)
        return (
            f'<div id="{html.escape(self.id(context))}" class="{self.css_class}" '
            f'data-payload="{html.escape(payload)}">'
            f'<input type="hidden" name="{html.escape(self.name)}" value="{html.escape(self.form_value())}">'
            "</div>"
        )

    def search(self, query: Optional[str], request: Optional[SearchRequestContext] = None) -> List[Record]:
        provider = self.search_settings.resolve_provider(self.name)
        if request is None:
            request = SearchRequestContext.for_query(query)
        results = provider.search(query, request)
        logger.info("search field=%s q=%r hits=%s", self.name, query, len(results))
        return results

    def lookup(self, identifier: Any, request: Optional[SearchRequestContext] = None) -> Optional[Record]:
        provider = self.search_settings.resolve_provider(self.name)
        if request is None:
            request = SearchRequestContext.for_id(identifier)
        lookup_by_id = getattr(provider, "lookup_by_id", None)
        if callable(lookup_by_id):
            record = lookup_by_id(str(identifier), request)
        else:
            key = str(identifier)
            record = next(
                (item for item in provider.search(request.query, request) if is_record(item) and record_key(item) == key),
                None,
            )
        logger.info("lookup field=%s id=%r found=%s", self.name, identifier, record is not None)
        return record

    def search_response(self, request: SearchRequestContext) -> JSONResponse:
        """Answer a request to this field's search action.

        ``?id=`` requests resolve a single record, everything else is a search
        for ``?query=``.
        """
        if request.identifier is not None:
            body: Any = self.lookup(request.identifier, request)
        else:
            body = self.search(request.query, request)
        return JSONResponse(content=jsonable_encoder(body), headers={"Access-Control-Allow-Origin": "*"})


class AjaxSelectField(_AjaxFieldBase):
    """Select a single entry using a custom endpoint, callback or search provider."""

    config_model = SelectFieldConfig
    css_class = "ajaxSelectFieldPlaceholder"

    def __init__(self, name: str, title: Optional[str] = None, value: Any = None) -> None:
        # Store only the id of the selected result instead of the full record.
        self.id_only_mode = False
        super().__init__(name, title, value)

    def set_id_only_mode(self, active: bool):
        """En-/disable the id only mode.

        The search endpoint or callback has to answer requests with an ``?id``
        parameter with that one result while the mode is active.
        """
        self.id_only_mode = bool(active)
        return self

    def encode_selection(self, selection: Any) -> str:
        if self.id_only_mode and is_record(selection):
            return record_key(selection)
        return encode_value(selection)

    def _stored_identifier(self) -> Optional[str]:
        if self.value.lstrip().startswith("{"):
            record = decode_record(self.value)
            return record_key(record) if record else None
        return decode_identifier(self.value)

    def value_for_component(self) -> Any:
        if not self.value:
            return None
        if self.id_only_mode:
            return self._stored_identifier()
        return decode_record(self.value)

    def data_value(self) -> Any:
        return self.value_for_component()

    def extra_config(self) -> Dict[str, Any]:
        return {"idOnlyMode": self.id_only_mode}


class AjaxMultiSelectField(_AjaxFieldBase):
    """Select several entries; each selected entry shows the configured display fields."""

    config_model = MultiSelectFieldConfig
    css_class = "ajaxMultiSelectFieldPlaceholder"

    def __init__(self, name: str, title: Optional[str] = None, value: Any = None) -> None:
        self.display_fields: Dict[str, str] = {}
        super().__init__(name, title, value)

    def set_display_fields(self, fields: Optional[Mapping[str, str]]):
        """Set the record keys (and their labels) shown for selected items."""
        self.display_fields = dict(fields or {})
        return self

    def get_display_fields(self) -> Dict[str, str]:
        return dict(self.display_fields) if self.display_fields else dict(DEFAULT_DISPLAY_FIELDS)

    def encode_selection(self, selection: Any) -> str:
        if isinstance(selection, (list, tuple)):
            selection = dedupe_records(item for item in selection if is_record(item))
        return encode_value(selection)

    def value_for_component(self) -> Optional[List[Record]]:
        if not self.value:
            return None
        return decode_records(self.value) or None

    def data_value(self) -> List[Record]:
        return self.value_for_component() or []

    def extra_config(self) -> Dict[str, Any]:
        return {"displayFields": self.get_display_fields()}
