"""Shared FastAPI dependencies."""
import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException

from .config import settings

logger = logging.getLogger(__name__)


async def require_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Reject the request unless X-API-Key matches the configured key.

    With no API_KEY configured every protected request is rejected.
    """
    expected = settings.api_key
    if not x_api_key or not expected or not hmac.compare_digest(x_api_key, expected):
        logger.warning("Rejected request with missing or invalid API key")
        raise HTTPException(status_code=403, detail="Forbidden: Invalid API key")
