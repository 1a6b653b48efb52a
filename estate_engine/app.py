from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .analytics.models import AnalyticsSnapshot
from .catalog import CatalogError
from .recommendations.models import (
    InteractionRequest,
    SimilarPropertiesResult,
    SuccessResponse,
)
from .recommendations.retrieval import PropertyNotFoundError
from .search.fingerprint import fingerprint
from .search.models import SearchAnalyticsRequest, SearchFilters, SearchResponse
from .services import EngineServices, build_services

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> EngineServices:
    """Return the engine services attached to the running application."""
    return request.app.state.services


def search_filters(
    search: str | None = None,
    location: str | None = None,
    bhk: str | None = None,
    min_price: str | None = None,
    max_price: str | None = None,
    limit: str | None = None,
) -> SearchFilters:
    """Build validated filters from raw query parameters ("Any", "2", "2.0" ...)."""
    try:
        return SearchFilters(
            query=search,
            location=location,
            bhk=bhk,
            min_price=min_price,
            max_price=max_price,
            limit=limit,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_context=False)) from exc


# ── Public endpoints ─────────────────────────────────────────────────────


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metadata")
def metadata(services: EngineServices = Depends(get_services)) -> dict:
    data = services.catalog.metadata()
    return {"locations": data["locations"], "propertyTypes": data["property_types"]}


# ── Search endpoints ─────────────────────────────────────────────────────


@router.get("/properties/search", response_model=SearchResponse)
def search_properties(
    filters: SearchFilters = Depends(search_filters),
    services: EngineServices = Depends(get_services),
) -> SearchResponse:
    return services.search.search(filters)


@router.get("/search/analytics", response_model=AnalyticsSnapshot)
def search_analytics(services: EngineServices = Depends(get_services)) -> AnalyticsSnapshot:
    return services.analytics.snapshot()


@router.post("/search/analytics", response_model=SuccessResponse)
def record_search_analytics(
    body: SearchAnalyticsRequest,
    services: EngineServices = Depends(get_services),
) -> SuccessResponse:
    logger.info(
        "Search analytics: query=%r results=%s time_ms=%s user=%s",
        body.query, body.result_count, body.response_time_ms, body.user_id,
    )
    if body.response_time_ms is not None:
        filters = body.filters
        if body.query:
            filters = filters.model_copy(update={"query": body.query})
        services.performance.record_query_performance(
            fingerprint(filters), body.response_time_ms,
        )
    return SuccessResponse()


# ── Similar properties endpoints ─────────────────────────────────────────


@router.get("/properties/{property_id}/similar", response_model=SimilarPropertiesResult)
def similar_properties(
    property_id: str,
    limit: int = Query(default=6, ge=1, le=50),
    user_id: str | None = Query(default=None, alias="userId", min_length=1, max_length=128),
    services: EngineServices = Depends(get_services),
) -> SimilarPropertiesResult:
    result = services.recommendations.get_similar_properties(property_id, user_id, limit)
    if result is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return result


@router.post("/properties/{property_id}/similar", response_model=SuccessResponse)
def record_property_interaction(
    property_id: str,
    body: InteractionRequest,
    services: EngineServices = Depends(get_services),
) -> SuccessResponse:
    # Anonymous interactions are accepted and ignored
    if body.user_id is None:
        return SuccessResponse()
    if body.interaction_type is None:
        raise HTTPException(status_code=422, detail="interactionType is required")
    try:
        services.recommendations.record_interaction(
            body.user_id, property_id, body.interaction_type,
        )
    except PropertyNotFoundError:
        raise HTTPException(status_code=404, detail="Property not found")
    return SuccessResponse()


# ── Cache administration ─────────────────────────────────────────────────


@router.get("/cache/stats")
def cache_stats(services: EngineServices = Depends(get_services)) -> dict:
    search_stats = services.query_cache.stats(
        average_response_time_ms=services.performance.average_response_time(),
    )
    return {
        "search": search_stats.model_dump(by_alias=True),
        "recommendations": services.recommendation_cache.stats().model_dump(by_alias=True),
    }


@router.delete("/cache")
def clear_cache(services: EngineServices = Depends(get_services)) -> dict[str, str]:
    services.clear_caches()
    return {"status": "cleared"}


@router.delete("/cache/properties/{property_id}")
def invalidate_property_cache(
    property_id: str,
    services: EngineServices = Depends(get_services),
) -> dict:
    removed = services.invalidate_property(property_id)
    return {"status": "invalidated", "removed": removed}


# ── Application factory ──────────────────────────────────────────────────


async def _catalog_unavailable(request: Request, exc: CatalogError) -> JSONResponse:
    logger.warning("Catalog query failed for %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=503, content={"detail": "Catalog unavailable"})


def create_app(services: EngineServices | None = None) -> FastAPI:
    services = services if services is not None else build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.start()
        try:
            yield
        finally:
            services.shutdown()

    app = FastAPI(
        title="Property Search & Recommendation API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_exception_handler(CatalogError, _catalog_unavailable)
    app.include_router(router)
    return app


app = create_app()
