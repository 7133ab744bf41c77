"""OpenAPI customization.

Adds tags metadata, documents the rate limit headers, and declares the
optional ``X-API-Key`` scheme only when client keys are enforced.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from ai_proxy.core.config import settings

RATE_LIMIT_HEADERS = {
    "X-RateLimit-Remaining": {
        "description": "Requests left for this client address in the current window.",
        "schema": {"type": "integer"},
    },
    "Retry-After": {
        "description": "Seconds until the window resets (429 responses only).",
        "schema": {"type": "integer"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags, headers and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in (
            {"name": "Completion", "description": "Proxied calls to the upstream AI service."},
            {"name": "Health", "description": "Liveness checks."},
        ):
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, methods in paths.items():
            if path.endswith("/health"):
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                for response in method_obj.get("responses", {}).values():
                    response.setdefault("headers", {}).update(RATE_LIMIT_HEADERS)

        if settings.app.api_key_required:
            components = schema.setdefault("components", {})
            components.setdefault("securitySchemes", {})["ApiKeyAuth"] = {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Client key issued by the proxy operator.",
            }
            for path, methods in paths.items():
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = (
                            [] if path.endswith("/health") else [{"ApiKeyAuth": []}]
                        )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
