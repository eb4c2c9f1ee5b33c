"""Notification send endpoint."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..rate_limit import limiter, send_rate_limit
from ..schemas.notification import SendRequest, MulticastSendResponse, TopicSendResponse
from ..services.push_sender import (
    NotificationPayload,
    PushNotConfiguredError,
    push_sender_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.post("/send", response_model=MulticastSendResponse | TopicSendResponse)
@limiter.limit(send_rate_limit)
async def send_notification(
    request: Request,
    send: SendRequest,
    db: AsyncSession = Depends(get_db),
):
    """Send a notification to a topic, or to all (optionally platform-filtered) devices.
    
    Device sends remove any token FCM reports as unregistered or invalid.
    """
    if not send.title or not send.body:
        raise HTTPException(status_code=400, detail="Title and body are required")
    
    payload = NotificationPayload(
        title=send.title,
        body=send.body,
        image=send.image,
        data=send.data or {},
    )
    
    try:
        if send.topic:
            message_id = await push_sender_service.send_to_topic(send.topic, payload)
            return TopicSendResponse(message_id=message_id)
        
        summary = await push_sender_service.send_to_devices(db, payload, platform=send.platform)
    except PushNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        await db.rollback()
        logger.error(f"Error sending: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    
    return MulticastSendResponse(
        success_count=summary.success_count,
        failure_count=summary.failure_count,
        removed=summary.removed,
    )
