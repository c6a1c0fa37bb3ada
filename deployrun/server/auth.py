"""Shared-secret authentication for the deployment routes."""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import HTTPException, Request

TOKEN_HEADER = "x-admin-deploy-token"


class ApiError(HTTPException):
    """HTTP error rendered as ``{"error": code, ...extra}``."""

    def __init__(self, status_code: int, code: str, **extra: Any) -> None:
        super().__init__(status_code=status_code, detail=code)
        self.code = code
        self.extra = extra

    def body(self) -> dict[str, Any]:
        return {"error": self.code, **self.extra}


def get_bearer_token(value: str | None) -> str | None:
    """Strip an optional ``Bearer`` prefix from a header value."""
    if not value:
        return None
    parts = value.strip().split(" ")
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return value.strip()


def resolve_token(request: Request) -> str | None:
    """Find the caller's token in the dedicated header, Authorization, or ``?token=``."""
    token = get_bearer_token(request.headers.get(TOKEN_HEADER)) or get_bearer_token(
        request.headers.get("authorization")
    )
    if token:
        return token
    return request.query_params.get("token") or None


def require_admin_token(request: Request) -> None:
    """FastAPI dependency guarding every deployment route.

    Raises
    ------
    ApiError
        500 when the server has no token configured, 403 on a bad token
    """
    expected = request.app.state.config.admin_token
    if not expected:
        raise ApiError(500, "ADMIN_DEPLOY_TOKEN_MISSING")
    provided = resolve_token(request)
    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise ApiError(403, "ADMIN_DEPLOY_TOKEN_INVALID")
