"""Pydantic models for the widget payload and search results."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchResult(BaseModel):
    """A single search hit. Providers may add any number of extra keys."""

    model_config = ConfigDict(extra="allow")

    id: int | str
    title: str | None = None


class SearchFieldConfig(BaseModel):
    minSearchChars: int = Field(..., ge=0)
    searchEndpoint: str
    placeholder: str
    getVars: dict[str, Any] | None = None
    headers: dict[str, str] | None = None


class SelectFieldConfig(SearchFieldConfig):
    idOnlyMode: bool = False


class MultiSelectFieldConfig(SearchFieldConfig):
    displayFields: dict[str, str] = Field(default_factory=lambda: {"id": "ID", "title": "Title"})


class FieldPayload(BaseModel):
    """The configuration blob embedded in the field markup."""

    id: str
    name: str
    value: Any = None
    lang: str
    config: dict[str, Any]
