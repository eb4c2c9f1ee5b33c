"""Topic subscription schemas."""
from typing import Optional
from pydantic import BaseModel


class TopicSubscriptionRequest(BaseModel):
    """Subscribe or unsubscribe one token to a topic."""
    token: Optional[str] = None
    topic: Optional[str] = None
