"""Notification send schemas."""
from typing import Any, Dict, Optional
from pydantic import BaseModel


class SendRequest(BaseModel):
    """Notification to deliver to a topic or to stored devices."""
    title: Optional[str] = None
    body: Optional[str] = None
    image: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    platform: Optional[str] = None
    topic: Optional[str] = None


class TopicSendResponse(BaseModel):
    """Result of a topic send."""
    message_id: str


class MulticastSendResponse(BaseModel):
    """Result of a multicast send after invalid tokens were removed."""
    success_count: int
    failure_count: int
    removed: int
