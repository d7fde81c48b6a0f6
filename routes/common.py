"""
Shared route helpers: error conversion and request actor.
"""

from typing import Optional
from fastapi import Header
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError, AuthenticationError

logger = structlog.get_logger(__name__)


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


async def get_current_actor(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id")
) -> str:
    """
    Acting user for command endpoints.

    The session layer in front of the API sets X-User-Id; a request
    without it is unauthenticated.
    """
    actor = (x_user_id or "").strip()
    if not actor:
        raise AuthenticationError(401, "Missing X-User-Id header")
    return actor
