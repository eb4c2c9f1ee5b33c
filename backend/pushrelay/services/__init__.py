"""Services for push delivery and scheduled maintenance."""
from .push_sender import PushSenderService, PushNotConfiguredError
from .scheduler import SchedulerService

__all__ = ["PushSenderService", "PushNotConfiguredError", "SchedulerService"]
