"""Caller-side capability check for administrative endpoints."""

from __future__ import annotations

import secrets

from fastapi import Header

from app.core.config import get_settings
from app.shared.exceptions import UnauthorizedException

settings = get_settings()


def is_valid_admin_key(candidate: str | None) -> bool:
    """Compare presented key with configured admin key in constant time."""
    if not candidate:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), settings.admin_api_key.encode("utf-8"))


async def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    """FastAPI dependency guarding admin-only routes."""
    if not is_valid_admin_key(x_admin_key):
        raise UnauthorizedException("Admin key is missing or invalid")
