"""Single and multi select form fields with asynchronously searched options."""
from .context import RenderContext, SearchRequestContext
from .errors import AjaxSelectError, InvalidCallbackError, SearchConfigurationError, SearchRequestError
from .fields import AjaxMultiSelectField, AjaxSelectField
from .providers import (
    CallbackSearchProvider,
    ElasticsearchSearchProvider,
    HttpSearchProvider,
    ListSearchProvider,
    SearchProvider,
)
from .routing import FieldRegistry, build_router
from .widget import MultiSelectWidget, SearchClient, SelectWidget

__all__ = [
    "AjaxMultiSelectField",
    "AjaxSelectError",
    "AjaxSelectField",
    "CallbackSearchProvider",
    "ElasticsearchSearchProvider",
    "FieldRegistry",
    "HttpSearchProvider",
    "InvalidCallbackError",
    "ListSearchProvider",
    "MultiSelectWidget",
    "RenderContext",
    "SearchClient",
    "SearchConfigurationError",
    "SearchProvider",
    "SearchRequestContext",
    "SearchRequestError",
    "SelectWidget",
    "build_router",
]
