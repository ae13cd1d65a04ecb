"""Public redirect routes."""

from fastapi import APIRouter, Request, HTTPException, status
from fastapi.responses import RedirectResponse

router = APIRouter()


@router.get("/health", include_in_schema=False)
async def health_check_web(request: Request):
    """Health check endpoint (simple version for load balancers)."""
    service = request.app.state.service

    health = await service.health_check()

    if health["overall"]:
        return {"status": "healthy"}
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service unhealthy",
    )


# Registered after /health so the literal path wins.
@router.get("/{short_token}", include_in_schema=False)
async def redirect_to_url(request: Request, short_token: str):
    """Redirect to the long URL and record the access."""
    service = request.app.state.service

    record = await service.resolve(short_token, track_access=True)

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short token '{short_token}' not found",
        )

    # 302 rather than 301 so browsers keep coming back and accesses are counted
    return RedirectResponse(url=record.long_url, status_code=status.HTTP_302_FOUND)
