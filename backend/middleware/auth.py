"""API key verification for mutating endpoints."""

import secrets
from typing import Annotated

from fastapi import Header, HTTPException, status

from config import get_settings

settings = get_settings()


async def verify_api_key(x_api_key: Annotated[str, Header()]) -> None:
    """Reject requests whose X-API-Key header does not match the configured key."""
    if not secrets.compare_digest(x_api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
