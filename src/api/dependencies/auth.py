"""
Optional X-API-Key check for the job routes.

API_AUTH_ENABLED and API_KEY are read on every request, so a .env loaded
after import still applies.
"""

import os
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,
    description="Scheduler API key (required when API_AUTH_ENABLED=true)",
)


def is_auth_enabled() -> bool:
    return os.getenv("API_AUTH_ENABLED", "false").lower() == "true"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> Optional[str]:
    """
    Reject job requests without the configured key.

    Returns:
        The accepted key, or None when authentication is off
    """
    if not is_auth_enabled():
        return None

    if not api_key:
        raise _unauthorized("Missing API key. Provide X-API-Key header.")
    if api_key != os.getenv("API_KEY", ""):
        raise _unauthorized("Invalid API key")

    return api_key
