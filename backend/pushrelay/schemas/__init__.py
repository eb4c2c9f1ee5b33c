"""Pydantic schemas for API request/response models."""
from .device import (
    DeviceRegisterRequest,
    DeviceUnregisterRequest,
    DeviceCountResponse,
    MessageResponse,
)
from .notification import SendRequest, MulticastSendResponse, TopicSendResponse
from .topic import TopicSubscriptionRequest

__all__ = [
    # Device
    "DeviceRegisterRequest",
    "DeviceUnregisterRequest",
    "DeviceCountResponse",
    "MessageResponse",
    # Notification
    "SendRequest",
    "MulticastSendResponse",
    "TopicSendResponse",
    # Topic
    "TopicSubscriptionRequest",
]
