"""Scheduler service - runs periodic device table maintenance."""
import logging
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import async_session
from ..models import Device
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


async def prune_stale_devices(session: AsyncSession, max_age_days: int) -> int:
    """Delete devices that have not re-registered within ``max_age_days``.

    Returns:
        Number of deleted devices (0 when pruning is disabled)
    """
    if max_age_days <= 0:
        return 0
    
    cutoff = datetime.utcnow() - timedelta(days=max_age_days)
    
    async def do_prune():
        result = await session.execute(
            delete(Device).where(Device.updated_at < cutoff)
        )
        await session.commit()
        return result.rowcount or 0
    
    return await retry_on_lock(do_prune, session=session)


class SchedulerService:
    """Service owning the cron-triggered cleanup job."""
    
    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
    
    @property
    def running(self) -> bool:
        return self._running
    
    def start(self):
        """Start the scheduler."""
        if self._running:
            return
        
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.cleanup_devices,
            trigger=CronTrigger.from_crontab(settings.cleanup_cron),
            id="cleanup_devices",
            replace_existing=True,
            max_instances=1,
        )
        
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (cleanup cron=\"{settings.cleanup_cron}\")")
    
    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")
    
    async def cleanup_devices(self) -> int:
        """Scheduled cleanup of stale device tokens."""
        logger.info("Scheduled cleanup running")
        try:
            async with async_session() as session:
                removed = await prune_stale_devices(session, settings.stale_device_days)
        except Exception as e:
            logger.error(f"Scheduled cleanup failed: {e}")
            return 0
        
        if removed:
            logger.info(f"Pruned {removed} devices idle for more than {settings.stale_device_days} days")
        return removed


# Global instance
scheduler_service = SchedulerService()
