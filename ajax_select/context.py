"""Explicit inputs for rendering a field and for answering a search request.

Nothing in this package reads the current user, locale or request from
global state; hosts build these contexts and pass them in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from fastapi import Request

from .config import settings
from .i18n import language_of


@dataclass(frozen=True)
class RenderContext:
    locale: Optional[str] = None
    form_name: Optional[str] = None
    link_prefix: str = settings.route_prefix

    @property
    def lang(self) -> str:
        return language_of(self.locale)

    def field_link(self, name: str, action: str | None = None) -> str:
        link = f"{self.link_prefix.rstrip('/')}/{name}"
        return f"{link}/{action}" if action else link


@dataclass(frozen=True)
class SearchRequestContext:
    """The parts of an incoming search request a search provider may look at."""

    params: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    request: Optional[Request] = None

    @classmethod
    def from_request(cls, request: Request) -> "SearchRequestContext":
        return cls(params=dict(request.query_params), headers=dict(request.headers), request=request)

    @classmethod
    def for_query(cls, query: str | None, **params: Any) -> "SearchRequestContext":
        return cls(params={"query": query, **params})

    @classmethod
    def for_id(cls, identifier: Any, **params: Any) -> "SearchRequestContext":
        return cls(params={"id": str(identifier), **params})

    @property
    def query(self) -> str | None:
        return self.params.get("query")

    @property
    def identifier(self) -> str | None:
        value = self.params.get("id")
        return str(value) if value not in (None, "") else None

    def get_var(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)
