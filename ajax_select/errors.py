"""Exceptions raised by the select fields and their search plumbing."""
from __future__ import annotations


class AjaxSelectError(Exception):
    """Base class for all errors of this package."""


class SearchConfigurationError(AjaxSelectError):
    """A field was rendered or searched without an endpoint or a search provider."""


class InvalidCallbackError(AjaxSelectError):
    """A search callback or provider is not usable."""


class SearchRequestError(AjaxSelectError):
    """A search request against an HTTP endpoint failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
