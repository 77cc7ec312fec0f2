from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.adapters.rate_limit.base import AbstractRateLimitStore
from app.core.config import settings
from app.core.rate_limit import (
    GLOBAL_NAMESPACE,
    build_rate_limit_key,
    get_identifier_type,
    get_rate_limit_store,
    rate_limit,
)
from app.schemas.rate_limit import RateLimitStatusResponse

router = APIRouter(tags=["Rate Limit"])


@router.get(
    "/rate-limit/status",
    response_model=RateLimitStatusResponse,
    dependencies=[
        Depends(
            rate_limit(
                "rate_limit_status",
                window_ms=settings.app.status_rate_limit_window_ms,
                max_requests=settings.app.status_rate_limit_requests,
            )
        )
    ],
)
async def get_rate_limit_status(
    request: Request,
    store: Annotated[AbstractRateLimitStore, Depends(get_rate_limit_store)],
) -> RateLimitStatusResponse:
    """Report the caller's global rate limit window.

    The global middleware has already counted this request, so the returned
    ``remaining`` includes it. Without a live window (e.g., limiting
    disabled) the full configured budget is reported.
    """

    status = store.get_status(build_rate_limit_key(request, GLOBAL_NAMESPACE))
    identifier_type = get_identifier_type(request)

    if status is None:
        ceiling = settings.app.rate_limit_max_requests
        return RateLimitStatusResponse(
            identifier_type=identifier_type,
            limited=False,
            remaining=ceiling,
            total=ceiling,
            reset_at=None,
        )

    return RateLimitStatusResponse(
        identifier_type=identifier_type,
        limited=status.remaining == 0,
        remaining=status.remaining,
        total=status.total,
        reset_at=status.reset_at,
    )
