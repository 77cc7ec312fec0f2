"""OpenAPI customization utilities.

Enriches the generated schema with:
- Tags metadata
- A documented 429 response on every rate limited operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.config import parse_paths, settings

TAGS_METADATA = [
    {
        "name": "Rate Limit",
        "description": "Inspect the caller's rate limit window.",
    },
    {
        "name": "Health",
        "description": "Liveness checks (never rate limited).",
    },
]

RATE_LIMITED_RESPONSE: Dict[str, Any] = {
    "description": "Rate limit exceeded. See Retry-After and X-RateLimit-* headers.",
    "headers": {
        "Retry-After": {"schema": {"type": "integer"}, "description": "Seconds until the window resets."},
        "X-RateLimit-Limit": {"schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
        "X-RateLimit-Reset": {"schema": {"type": "integer"}, "description": "Epoch seconds."},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses.

    Operations on public paths, or outside the rate limited prefix, are left
    without a 429 response.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        public_paths = parse_paths(settings.app.public_paths)
        prefix = settings.app.rate_limit_path_prefix
        for path, methods in schema.get("paths", {}).items():
            if not path.startswith(prefix) or path.rstrip("/") in public_paths:
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault("429", RATE_LIMITED_RESPONSE)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
