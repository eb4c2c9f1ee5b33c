"""Device registration API endpoints for push notifications."""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import require_api_key
from ..models import Device
from ..schemas.device import (
    DeviceRegisterRequest,
    DeviceUnregisterRequest,
    DeviceCountResponse,
    MessageResponse,
)
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(tags=["devices"])


@router.post("/register", response_model=MessageResponse)
async def register_device(
    request: DeviceRegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a device token, or move an existing token to a new platform.
    
    Apps should call this on every launch so the stored token stays current.
    """
    if not request.token or not request.platform:
        raise HTTPException(status_code=400, detail="Token and platform are required")
    
    async def do_upsert():
        result = await db.execute(select(Device).where(Device.token == request.token))
        device = result.scalar_one_or_none()
        
        if device:
            device.platform = request.platform
            device.updated_at = datetime.utcnow()
        else:
            db.add(Device(token=request.token, platform=request.platform))
        
        await db.commit()
    
    try:
        await retry_on_lock(do_upsert, session=db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Register error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    
    logger.info(f"Registered token: {request.token[:16]}... ({request.platform})")
    return MessageResponse(message="Token registered successfully")


@router.delete(
    "/unregister",
    response_model=MessageResponse,
    dependencies=[Depends(require_api_key)],
)
async def unregister_device(
    request: DeviceUnregisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Delete a single device token."""
    if not request.token:
        raise HTTPException(status_code=400, detail="Token required")
    
    async def do_delete():
        result = await db.execute(delete(Device).where(Device.token == request.token))
        await db.commit()
        return result.rowcount
    
    try:
        deleted = await retry_on_lock(do_delete, session=db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Unregister error: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete token")
    
    if not deleted:
        raise HTTPException(status_code=404, detail="Token not found")
    
    logger.info(f"Unregistered token: {request.token[:16]}...")
    return MessageResponse(message="Token deleted successfully")


@router.delete(
    "/clear-devices",
    response_model=MessageResponse,
    dependencies=[Depends(require_api_key)],
)
async def clear_devices(db: AsyncSession = Depends(get_db)):
    """Delete every registered device."""
    async def do_clear():
        result = await db.execute(delete(Device))
        await db.commit()
        return result.rowcount
    
    try:
        cleared = await retry_on_lock(do_clear, session=db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Clear error: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear devices")
    
    logger.info(f"Cleared {cleared} devices")
    return MessageResponse(message="All devices cleared")


@router.get(
    "/devices/count",
    response_model=DeviceCountResponse,
    dependencies=[Depends(require_api_key)],
)
async def get_device_count(db: AsyncSession = Depends(get_db)):
    """Get count of registered devices, total and per platform."""
    result = await db.execute(
        select(Device.platform, func.count(Device.id)).group_by(Device.platform)
    )
    by_platform = {platform: count for platform, count in result.all()}
    
    return DeviceCountResponse(
        total=sum(by_platform.values()),
        by_platform=by_platform,
    )
