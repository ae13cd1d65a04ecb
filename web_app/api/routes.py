"""API routes implementation."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, HTTPException, status
from fastapi.responses import RedirectResponse

from .schemas import (
    ShortenRequest,
    ShortenResponse,
    LinkResponse,
    LinkListResponse,
    UpdateLinkRequest,
    HealthResponse,
    ErrorResponse,
    StatisticsResponse,
)
from shortlink.common.url_builder import build_short_url
from shortlink.common.headers import build_base_url
from shortlink.models import CreateStatus

router = APIRouter()


def _short_url(request: Request, short_token: str) -> str:
    """Build the public short URL for a token."""
    config = request.app.state.config
    base_url = build_base_url(
        headers=request.headers,
        fallback_base_url=config.base_url,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )
    return build_short_url(
        short_token=short_token,
        base_url=base_url,
        path_prefix=config.path_prefix,
    )


def _not_found(short_token: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Short token '{short_token}' not found",
    )


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": ShortenResponse, "description": "Long URL was already shortened"},
        400: {"model": ErrorResponse, "description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "No free token available"},
        503: {"model": ErrorResponse, "description": "Store unavailable"},
    },
    summary="Create short URL",
    description="Create a shortened URL. Submitting the same URL again returns the existing token.",
)
async def shorten_url(request: Request, response: Response, body: ShortenRequest):
    """Create a shortened URL."""
    service = request.app.state.service

    result = await service.create(
        body.url,
        created_by=body.created_by,
        description=body.description,
        expires_at=body.expires_at,
    )

    if result.status is CreateStatus.DUPLICATE:
        response.status_code = status.HTTP_200_OK

    record = result.record
    return ShortenResponse(
        status=result.status.value,
        short_token=record.short_token,
        short_url=_short_url(request, record.short_token),
        long_url=record.long_url,
        created_at=record.created_at,
        expires_at=record.expires_at,
    )


@router.get(
    "/urls",
    response_model=LinkListResponse,
    summary="List short URLs",
    description="List every short URL ordered by creation.",
)
async def list_urls(request: Request):
    """List all short URLs."""
    service = request.app.state.service

    records = await service.list_links()
    return LinkListResponse(
        count=len(records),
        links=[LinkResponse.from_record(r, _short_url(request, r.short_token)) for r in records],
    )


@router.get(
    "/urls/{short_token}",
    response_model=LinkResponse,
    responses={
        302: {"description": "Redirect to the long URL (default)"},
        404: {"model": ErrorResponse, "description": "Short token not found"},
    },
    summary="Resolve short URL",
    description="Redirect to the long URL, or return the link metadata when redirect=false.",
)
async def get_url(request: Request, short_token: str, redirect: bool = True):
    """Resolve a short token."""
    service = request.app.state.service

    record = await service.resolve(short_token, track_access=redirect)
    if record is None:
        raise _not_found(short_token)

    if redirect:
        return RedirectResponse(url=record.long_url, status_code=status.HTTP_302_FOUND)

    return LinkResponse.from_record(record, _short_url(request, short_token))


@router.patch(
    "/urls/{short_token}",
    response_model=LinkResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid update"},
        404: {"model": ErrorResponse, "description": "Short token not found"},
    },
    summary="Update short URL",
    description="Activate/deactivate a link or change its expiry or description.",
)
async def update_url(request: Request, short_token: str, body: UpdateLinkRequest):
    """Update a short URL."""
    service = request.app.state.service

    changes = body.model_dump(include=body.model_fields_set)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    record = await service.update(short_token, **changes)
    return LinkResponse.from_record(record, _short_url(request, short_token))


@router.delete(
    "/urls/{short_token}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Short token not found"}},
    summary="Delete short URL",
)
async def delete_url(request: Request, short_token: str):
    """Permanently delete a short URL."""
    service = request.app.state.service

    if not await service.delete(short_token):
        raise _not_found(short_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/stats",
    response_model=StatisticsResponse,
    summary="Get statistics",
    description="Get service-wide statistics (refreshed at most hourly).",
)
async def get_statistics(request: Request):
    """Get service statistics."""
    service = request.app.state.service

    stats = await service.stats()

    return StatisticsResponse(
        **stats,
        database=service.store.backend_name,
        cache=service.cache.backend.name,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is healthy.",
)
async def health_check(request: Request):
    """Health check endpoint for monitoring."""
    service = request.app.state.service

    health = await service.health_check()

    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
