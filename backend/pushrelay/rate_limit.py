"""Per-client rate limiting for notification sends using slowapi."""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import settings

logger = logging.getLogger(__name__)

# In-memory storage; limits are per process
limiter = Limiter(key_func=get_remote_address)


def send_rate_limit() -> str:
    """Current limit for /send, read per request so it follows settings."""
    return settings.send_rate_limit


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a friendly message when a client exceeds its limit."""
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please try again later."},
    )
