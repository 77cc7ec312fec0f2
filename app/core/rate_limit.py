"""Rate limiting for the HTTP layer.

This module wires the rate limit store into FastAPI.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the store lives behind ``AbstractRateLimitStore`` on
  ``app.state`` and can be replaced (e.g., Redis) without touching routes.
- Namespaced keys: every call site prefixes its own namespace so limits
  with different windows never share a counter.

Strategy:
- Global limit per client on every path under ``rate_limit_path_prefix``
  (middleware, namespace ``global``).
- Optional per-route limits declared with ``Depends(rate_limit(...))``.
- Clients are keyed by authenticated subject when an upstream auth layer
  set ``request.state.subject``, otherwise by client IP.
"""

from __future__ import annotations

import logging
import math
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitConfig, RateLimitStatus
from app.adapters.rate_limit.in_memory import hash_identifier
from app.core.config import parse_paths, settings
from app.core.errors import RateLimitAppError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

GLOBAL_NAMESPACE = "global"
RATE_LIMIT_ERROR_CODE = "rate_limit_exceeded"
RATE_LIMIT_ERROR_MESSAGE = "Rate limit exceeded. Try again later."


def get_client_ip(request: Request) -> str:
    """Resolve the client address for the request.

    Proxy headers are checked first (first hop of X-Forwarded-For, then
    X-Real-IP, then CF-Connecting-IP) when ``trust_proxy_headers`` is on.

    Args:
        request: FastAPI request.

    Returns:
        str: Client IP, or "unknown" when it cannot be determined.
    """

    if settings.app.trust_proxy_headers:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
        for header in ("x-real-ip", "cf-connecting-ip"):
            value = request.headers.get(header)
            if value:
                return value.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_identifier_type(request: Request) -> str:
    return "user" if getattr(request.state, "subject", None) else "ip"


def build_rate_limit_key(request: Request, namespace: str) -> str:
    """Build the namespaced limiter key for the current request.

    Args:
        request: FastAPI request.
        namespace: Call-site namespace (e.g., "global", "rate_limit_status").

    Returns:
        str: Key of the form ``{namespace}:user:{subject}`` or
            ``{namespace}:ip:{client_ip}``.
    """

    subject = getattr(request.state, "subject", None)
    if subject:
        return f"{namespace}:user:{subject}"
    return f"{namespace}:ip:{get_client_ip(request)}"


def get_rate_limit_store(request: Request) -> AbstractRateLimitStore:
    """FastAPI dependency returning the store owned by the application."""

    return request.app.state.rate_limit_store


def get_global_config() -> RateLimitConfig:
    return RateLimitConfig(
        window_ms=settings.app.rate_limit_window_ms,
        max_requests=settings.app.rate_limit_max_requests,
    )


def _now_ms() -> float:
    return time.time() * 1000


def retry_after_seconds(status: RateLimitStatus | None, *, now_ms: float) -> int:
    """Seconds until the window resets, rounded up and at least 1."""

    if status is None:
        return 1
    return max(1, int(math.ceil((status.reset_at - now_ms) / 1000)))


def build_rate_limit_headers(status: RateLimitStatus | None, *, now_ms: float) -> dict[str, str]:
    """Build Retry-After and X-RateLimit-* headers for a rejected request."""

    if not settings.app.rate_limit_include_headers or status is None:
        return {}
    return {
        "Retry-After": str(retry_after_seconds(status, now_ms=now_ms)),
        "X-RateLimit-Limit": str(status.total),
        "X-RateLimit-Remaining": str(status.remaining),
        "X-RateLimit-Reset": str(int(math.ceil(status.reset_at / 1000))),
    }


def build_rate_limit_error(
    status: RateLimitStatus | None,
    *,
    namespace: str,
    now_ms: float,
) -> RateLimitAppError:
    """Build the domain error describing a rejected admission."""

    details = {
        "namespace": namespace,
        "retry_after": retry_after_seconds(status, now_ms=now_ms),
    }
    if status is not None:
        details.update(limit=status.total, remaining=status.remaining, reset_at=status.reset_at)

    return RateLimitAppError(
        code=RATE_LIMIT_ERROR_CODE,
        message=RATE_LIMIT_ERROR_MESSAGE,
        details=details,  # type: ignore[arg-type]
        headers=build_rate_limit_headers(status, now_ms=now_ms),
    )


def build_rate_limited_response(exc: RateLimitAppError) -> JSONResponse:
    """Render a rate limit error as a 429 in the app's error envelope."""

    content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        content["details"] = exc.details

    return JSONResponse(
        status_code=429,
        content={"error": content},
        headers=exc.headers or None,
    )


def admit(
    request: Request,
    store: AbstractRateLimitStore,
    *,
    namespace: str,
    config: RateLimitConfig,
) -> RateLimitAppError | None:
    """Run one admission check for the request.

    Returns:
        None when admitted, otherwise the error describing the rejection.
    """

    key = build_rate_limit_key(request, namespace)
    key_hash = hash_identifier(key)
    key_type = get_identifier_type(request)

    if store.check_limit(key, config):
        logger.debug(
            "rate_limit.allowed",
            extra={
                "namespace": namespace,
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": config.max_requests,
                "window_ms": config.window_ms,
            },
        )
        return None

    now = _now_ms()
    error = build_rate_limit_error(store.get_status(key), namespace=namespace, now_ms=now)
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "namespace": namespace,
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": config.max_requests,
            "window_ms": config.window_ms,
            "retry_after_s": error.details["retry_after"] if error.details else None,
            "request_path": request.url.path,
        },
    )
    return error


def is_rate_limited_path(path: str) -> bool:
    if not path.startswith(settings.app.rate_limit_path_prefix):
        return False
    return (path.rstrip("/") or "/") not in parse_paths(settings.app.public_paths)


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing the global per-client rate limit.

    Exceptions raised in middleware bypass the registered exception
    handlers, so the 429 response is rendered here directly.
    """

    if not settings.app.rate_limit_enabled or not is_rate_limited_path(request.url.path):
        return await call_next(request)

    error = admit(
        request,
        get_rate_limit_store(request),
        namespace=GLOBAL_NAMESPACE,
        config=get_global_config(),
    )
    if error is not None:
        return build_rate_limited_response(error)
    return await call_next(request)


def rate_limit(namespace: str, *, window_ms: int, max_requests: int):
    """Create a FastAPI dependency enforcing a per-route limit.

    Usage:
        @router.post("/export", dependencies=[Depends(rate_limit("export", window_ms=60_000, max_requests=5))])

    Args:
        namespace: Prefix isolating this route's counters from other call sites.
        window_ms: Window length in milliseconds.
        max_requests: Admitted requests per window per client.

    Returns:
        Async dependency raising RateLimitAppError (429) when exhausted.

    Raises:
        ValueError: If namespace is empty, contains ":" (the key separator) or
            is the reserved global namespace.
    """

    if not namespace or ":" in namespace:
        raise ValueError("namespace must be non-empty and must not contain ':'")
    if namespace == GLOBAL_NAMESPACE:
        raise ValueError(f"namespace '{GLOBAL_NAMESPACE}' is reserved for the global limit")
    config = RateLimitConfig(window_ms=window_ms, max_requests=max_requests)

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.app.rate_limit_enabled:
            return
        error = admit(request, get_rate_limit_store(request), namespace=namespace, config=config)
        if error is not None:
            raise error

    return enforce_rate_limit
