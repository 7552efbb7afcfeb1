"""
Main API module for Shortlink Platform.

Responsibilities:
    - Expose REST endpoints for creating, listing and resolving short links
    - Redirect with 302 and count clicks best-effort
    - Serve dense per-day click analytics per owner and per code
    - Translate service errors into HTTP status codes

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory storage by default; PostgreSQL via SHORTLINK_STORAGE_BACKEND=postgres.
    - ShorteningService orchestrates validation, code generation, resolution and analytics.
    - HTTP Basic credentials are resolved to an owner id here, never inside the service.

LLM Prompt Example:
    "Explain how to structure a FastAPI service with an application factory,
    injected dependencies, and a clean separation between API and business logic."
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from auth.dependencies import get_current_user, get_optional_user
from shortlink_platform.config import settings
from shortlink_platform.errors import (
    AnalyticsTimeout,
    CodeTaken,
    GenerationExhausted,
    InvalidRange,
    LinkExpired,
    LinkNotFound,
    ShortLinkError,
    TransientError,
    ValidationError,
)
from shortlink_platform.manager.shortening_service import MAX_TTL_SECONDS, ShorteningService
from shortlink_platform.storage.storage_factory import get_storage


class CreateLinkRequest(BaseModel):
    """Request payload for creating a new short link."""

    model_config = ConfigDict(populate_by_name=True)

    target_url: str = Field(alias="targetUrl")
    custom_code: Optional[str] = Field(default=None, alias="customCode")
    ttl_seconds: Optional[int] = Field(default=None, alias="ttlSeconds", gt=0, le=MAX_TTL_SECONDS)


# Order matters: subclasses before their bases.
_ERROR_STATUS = (
    (InvalidRange, status.HTTP_400_BAD_REQUEST),
    (ValidationError, 422),
    (CodeTaken, status.HTTP_409_CONFLICT),
    (LinkNotFound, status.HTTP_404_NOT_FOUND),
    (LinkExpired, status.HTTP_410_GONE),
    (GenerationExhausted, status.HTTP_503_SERVICE_UNAVAILABLE),
    (AnalyticsTimeout, status.HTTP_504_GATEWAY_TIMEOUT),
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _http_error(exc: ShortLinkError) -> HTTPException:
    """Map a service error to an HTTPException; transient ones are marked uncacheable."""
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = None
    if isinstance(exc, (TransientError, GenerationExhausted)):
        headers = {"Retry-After": "1", "Cache-Control": "no-store"}
    return HTTPException(status_code=code, detail=str(exc), headers=headers)


def create_app(service: Optional[ShorteningService] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        service: Pre-built service (tests inject one); otherwise one is built
                 around `get_storage()`.

    Returns:
        FastAPI: A fully configured application instance with its own
                 storage, analytics and background click dispatcher.

    Why an app factory?
        - Enables per-test isolation in pytest.
        - Encourages dependency injection and easy swapping of implementations.
        - Avoids accidental global state across workers/processes.
    """
    log = logging.getLogger("shortlink")

    # basic console logging (optional)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    if service is None:
        service = ShorteningService(storage=get_storage())  # ← memory or postgres based on env
    log.info("Shortlink storage backend: %s", type(service.storage).__name__)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        service.dispatcher.start()
        yield
        service.close()

    app = FastAPI(
        title="Shortlink Platform",
        description="URL shortener with atomic code claims, best-effort click counting and daily analytics",
        docs_url="/docs",  # Swagger UI endpoint
        lifespan=lifespan,
    )
    app.state.service = service

    # Health check
    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    # ----------------------------------------------------------------
    # Links
    # ----------------------------------------------------------------
    @app.post("/links", status_code=status.HTTP_201_CREATED)
    def create_link(
        req: CreateLinkRequest,
        request: Request,
        owner_id: Optional[str] = Depends(get_optional_user),
        check_reachable: Optional[bool] = Query(
            None, description="Verify the target responds (HEAD/GET) before creating."
        ),
    ) -> Dict[str, Any]:
        """
        Create a short link.

        Returns 201 with the link, 409 when the custom code is taken,
        422 on a rejected URL or code, 503 when no free code could be drawn.
        """
        try:
            link = service.shorten(
                req.target_url,
                owner_id=owner_id,
                custom_code=req.custom_code,
                ttl=req.ttl_seconds,
                check_reachable=check_reachable,
            )
        except ShortLinkError as exc:
            raise _http_error(exc) from exc

        body = link.to_dict()
        body["shortUrl"] = str(request.url_for("redirect_link", code=link.code))
        return body

    @app.get("/links")
    def list_links(owner_id: str = Depends(get_current_user)) -> List[Dict[str, Any]]:
        """Links created by the authenticated caller; empty list when none."""
        try:
            return [link.to_dict() for link in service.my_links(owner_id)]
        except ShortLinkError as exc:
            raise _http_error(exc) from exc

    # ----------------------------------------------------------------
    # Analytics
    # ----------------------------------------------------------------
    @app.get("/analytics")
    def owner_analytics(
        owner_id: str = Depends(get_current_user),
        start: Optional[str] = Query(None, description="First day (YYYY-MM-DD, UTC)."),
        end: Optional[str] = Query(None, description="Last day (YYYY-MM-DD, UTC), inclusive."),
    ) -> List[Dict[str, Any]]:
        """Dense daily click totals over every link of the caller."""
        try:
            start_day, end_day = service.aggregator.parse_range(start, end)
            series = service.totals_by_owner(owner_id, start_day, end_day)
        except ShortLinkError as exc:
            raise _http_error(exc) from exc
        return [point.to_dict() for point in series]

    @app.get("/analytics/{code}")
    def code_analytics(
        code: str,
        owner_id: str = Depends(get_current_user),
        start: Optional[str] = Query(None, description="First day (YYYY-MM-DD, UTC)."),
        end: Optional[str] = Query(None, description="Last day (YYYY-MM-DD, UTC), inclusive."),
    ) -> List[Dict[str, Any]]:
        """Dense daily click totals for one of the caller's links (404 if not theirs)."""
        try:
            start_day, end_day = service.aggregator.parse_range(start, end)
            series = service.totals_by_code(owner_id, code, start_day, end_day)
        except ShortLinkError as exc:
            raise _http_error(exc) from exc
        return [point.to_dict() for point in series]

    # ----------------------------------------------------------------
    # Redirect (registered last so fixed paths above win)
    # ----------------------------------------------------------------
    @app.get("/{code}", name="redirect_link")
    def redirect_link(code: str) -> RedirectResponse:
        """
        302 to the target URL; 404 unknown, 410 expired, 503 store slow or down.
        The click is counted best-effort and never delays or fails the redirect.
        """
        try:
            target = service.resolve(code)
        except ShortLinkError as exc:
            raise _http_error(exc) from exc
        return RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)

    return app


# Backward compatibility for uvicorn and legacy imports:
# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
