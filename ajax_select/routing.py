"""FastAPI glue exposing the ``search`` action of registered fields."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Iterator, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import settings
from .context import RenderContext, SearchRequestContext
from .errors import SearchConfigurationError
from .fields import AjaxMultiSelectField, AjaxSelectField

logger = logging.getLogger(__name__)

AjaxField = Union[AjaxSelectField, AjaxMultiSelectField]


class FieldRegistry:
    """Fields reachable under ``<prefix>/<name>/search``."""

    def __init__(self, fields: Iterable[AjaxField] = (), prefix: str = settings.route_prefix) -> None:
        self.prefix = prefix
        self._fields: Dict[str, AjaxField] = {}
        for field in fields:
            self.register(field)

    def register(self, field: AjaxField) -> AjaxField:
        if field.name in self._fields:
            logger.warning("Replacing registered field %s", field.name)
        self._fields[field.name] = field
        return field

    def get(self, name: str) -> Optional[AjaxField]:
        return self._fields.get(name)

    def __iter__(self) -> Iterator[AjaxField]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def render_context(self, locale: Optional[str] = None, form_name: Optional[str] = None) -> RenderContext:
        return RenderContext(locale=locale, form_name=form_name, link_prefix=self.prefix)


def build_router(registry: FieldRegistry) -> APIRouter:
    router = APIRouter(prefix=registry.prefix.rstrip("/"))

    @router.get("/{name}/search")
    async def search(name: str, request: Request) -> JSONResponse:
        field = registry.get(name)
        if field is None:
            raise HTTPException(status_code=404, detail=f"Unknown field {name}")
        context = SearchRequestContext.from_request(request)
        try:
            return await asyncio.to_thread(field.search_response, context)
        except SearchConfigurationError as exc:
            logger.error("Search on unconfigured field %s: %s", name, exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Search failed for field %s q=%r", name, context.query)
            raise HTTPException(status_code=502, detail="Search failed") from exc

    return router
