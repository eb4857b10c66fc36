"""Demo FastAPI application showing both select fields in a form."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse

from .config import settings
from .fields import AjaxMultiSelectField, AjaxSelectField
from .providers import ElasticsearchSearchProvider, ListSearchProvider, SearchProvider
from .routing import FieldRegistry, build_router

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# ``force=True`` replaces uvicorn's default handlers so field searches are
# logged with the same format.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport", "httpx"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

COMPANIES = [
    {"id": 1, "title": "Acme", "city": "Springfield"},
    {"id": 2, "title": "Acme Rockets", "city": "Albuquerque"},
    {"id": 3, "title": "Globex Corporation", "city": "Cypress Creek"},
    {"id": 4, "title": "Initech", "city": "Austin"},
    {"id": 5, "title": "Crème Brûlée Bakery", "city": "Paris"},
]

TAGS = [
    {"id": "py", "title": "Python", "category": "Language"},
    {"id": "js", "title": "JavaScript", "category": "Language"},
    {"id": "pg", "title": "PostgreSQL", "category": "Database"},
    {"id": "es", "title": "Elasticsearch", "category": "Database"},
    {"id": "k8s", "title": "Kubernetes", "category": "Platform"},
]


def company_provider() -> SearchProvider:
    if settings.search_backend == "elasticsearch":
        logger.info("Company search backed by Elasticsearch index %s", settings.es_index)
        return ElasticsearchSearchProvider(index=settings.es_index)
    return ListSearchProvider(COMPANIES, search_fields=("title", "city"))


def company_field(provider: SearchProvider, value: Any = None) -> AjaxSelectField:
    return (
        AjaxSelectField("Company", value=value)
        .set_id_only_mode(True)
        .set_search_provider(provider)
        .set_min_search_chars(3)
    )


def tags_field(provider: SearchProvider, value: Any = None) -> AjaxMultiSelectField:
    return (
        AjaxMultiSelectField("Tags", value=value)
        .set_search_provider(provider)
        .set_min_search_chars(2)
        .set_display_fields({"title": "Tag", "category": "Category"})
    )


companies = company_provider()
tags = ListSearchProvider(TAGS, search_fields=("title", "category"))
registry = FieldRegistry([company_field(companies), tags_field(tags)])

app = FastAPI(title="Ajax Select Field Demo")
app.include_router(build_router(registry))


@app.on_event("startup")
async def startup_event() -> None:
    logger.info("Registered fields: %s", ", ".join(field.name for field in registry))


@app.get("/health")
async def health() -> dict:
    return {"fields": len(registry), "backend": settings.search_backend}


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def form(lang: Optional[str] = Query(None, description="Locale, e.g. de_DE")) -> str:
    context = registry.render_context(locale=lang, form_name="DemoForm")
    rows = "".join(
        f"<label>{field.title}</label>{field.field(context)}" for field in registry
    )
    return f'<form method="post" action="/submit">{rows}<button type="submit">Save</button></form>'


@app.post("/submit")
async def submit(request: Request) -> dict:
    data = await request.form()
    company = company_field(companies, value=data.get("Company", ""))
    selected_tags = tags_field(tags, value=data.get("Tags", ""))
    logger.info("Submitted company=%r tags=%r", company.value, selected_tags.value)
    return {"Company": company.data_value(), "Tags": selected_tags.data_value()}
