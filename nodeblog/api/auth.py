"""
Bearer token auth for the HTTP API.

Every API call must carry `Authorization: Bearer <token>`.
The token comes from NODEBLOG_AUTH_TOKEN, or is generated at startup
and logged once so the local operator can pick it up.
"""

import os
import secrets

from fastapi import HTTPException, Request

from ..observability import get_logger

logger = get_logger(__name__)


def load_auth_token() -> str:
    """Get the API token from the environment, or generate one."""
    token = os.environ.get("NODEBLOG_AUTH_TOKEN", "")
    if token:
        return token
    token = secrets.token_urlsafe(32)
    logger.warning("NODEBLOG_AUTH_TOKEN not set; generated API token", auth_token=token)
    return token


def require_auth_token(request: Request) -> None:
    """FastAPI dependency: reject requests without the node's token."""
    expected = request.app.state.auth_token
    header = request.headers.get("Authorization", "")
    scheme, _, supplied = header.partition(" ")

    if scheme.lower() != "bearer" or not supplied:
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not secrets.compare_digest(supplied.strip(), expected):
        raise HTTPException(
            status_code=401,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
