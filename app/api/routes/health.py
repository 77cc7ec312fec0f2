from __future__ import annotations

from fastapi import APIRouter

from app.schemas.rate_limit import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    Listed in the default public paths, so the global rate limit never
    applies and load balancers can poll it freely.
    """

    return HealthResponse(status="ok")
