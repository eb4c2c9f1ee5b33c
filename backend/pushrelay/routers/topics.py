"""Topic subscription passthrough endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import require_api_key
from ..schemas.device import MessageResponse
from ..schemas.topic import TopicSubscriptionRequest
from ..services.push_sender import PushNotConfiguredError, TopicResult, push_sender_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["topics"], dependencies=[Depends(require_api_key)])


def _validate(request: TopicSubscriptionRequest):
    if not request.token or not request.topic:
        raise HTTPException(status_code=400, detail="Token and topic required")


def _raise_for_failures(result: TopicResult):
    """Surface per-token FCM errors, which are reported without raising."""
    if result.failure_count:
        reason = result.errors[0] if result.errors else "unknown-error"
        raise HTTPException(status_code=400, detail=reason)


@router.post("/subscribe-topic", response_model=MessageResponse)
async def subscribe_topic(request: TopicSubscriptionRequest):
    """Subscribe a token to a topic."""
    _validate(request)
    
    try:
        result = await push_sender_service.subscribe([request.token], request.topic)
    except PushNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Subscription error: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    
    _raise_for_failures(result)
    logger.info(f"Subscribed {request.token[:16]}... to topic {request.topic}")
    return MessageResponse(message=f"Subscribed to {request.topic}")


@router.post("/unsubscribe-topic", response_model=MessageResponse)
async def unsubscribe_topic(request: TopicSubscriptionRequest):
    """Unsubscribe a token from a topic."""
    _validate(request)
    
    try:
        result = await push_sender_service.unsubscribe([request.token], request.topic)
    except PushNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Unsubscribe error: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    
    _raise_for_failures(result)
    logger.info(f"Unsubscribed {request.token[:16]}... from topic {request.topic}")
    return MessageResponse(message=f"Unsubscribed from {request.topic}")
