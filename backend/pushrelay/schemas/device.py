"""Device schemas for API request/response models."""
from typing import Dict, Optional
from pydantic import BaseModel


class DeviceRegisterRequest(BaseModel):
    """Request to register a device for push notifications.

    Fields are optional so missing values reach the handler and produce
    the documented 400 rather than a schema error.
    """
    token: Optional[str] = None
    platform: Optional[str] = None


class DeviceUnregisterRequest(BaseModel):
    """Request to remove a single device token."""
    token: Optional[str] = None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str


class DeviceCountResponse(BaseModel):
    """Registered device totals."""
    total: int
    by_platform: Dict[str, int]
