"""Push notification sender service using Firebase Cloud Messaging."""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.device import Device
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "pushrelay"

# FCM rejects multicast messages with more tokens than this
MULTICAST_TOKEN_LIMIT = 500


class PushNotConfiguredError(RuntimeError):
    """Raised when a send is attempted before Firebase credentials are loaded."""


@dataclass
class PushConfig:
    """Firebase configuration."""
    credentials_path: str = ""  # Service account JSON
    use_application_default: bool = False


@dataclass
class NotificationPayload:
    """Content shared by topic and multicast sends."""
    title: str
    body: str
    image: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenResult:
    """Outcome of a multicast send for one token."""
    token: str
    success: bool
    message_id: Optional[str] = None
    exception: Optional[Exception] = None


@dataclass
class SendSummary:
    """Totals for a fan-out to stored devices."""
    success_count: int = 0
    failure_count: int = 0
    removed: int = 0


@dataclass
class TopicResult:
    """Outcome of a topic subscription change."""
    success_count: int
    failure_count: int
    errors: List[str] = field(default_factory=list)


def is_invalid_token_error(exc: Optional[Exception]) -> bool:
    """True when FCM reports the token as unregistered or malformed."""
    return isinstance(exc, (messaging.UnregisteredError, exceptions.InvalidArgumentError))


def _stringify_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """FCM data payload values must all be strings."""
    if not data:
        return {}
    return {
        str(key): value if isinstance(value, str) else json.dumps(value)
        for key, value in data.items()
    }


def _chunks(items: List[str], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class PushSenderService:
    """Service for sending push notifications via FCM."""

    def __init__(self):
        self._app: Optional[firebase_admin.App] = None

    @property
    def is_configured(self) -> bool:
        return self._app is not None

    def configure(self, config: PushConfig):
        """Initialise the Firebase app, replacing any previous one."""
        self.close()

        if not config.use_application_default and not config.credentials_path:
            logger.warning("Firebase credentials not set - push notifications are disabled")
            return

        try:
            if config.use_application_default:
                credential = credentials.ApplicationDefault()
            else:
                credential = credentials.Certificate(config.credentials_path)
            self._app = firebase_admin.initialize_app(credential, name=FIREBASE_APP_NAME)
            logger.info(f"Firebase app \"{FIREBASE_APP_NAME}\" configured")
        except Exception as e:
            logger.error(f"Failed to configure Firebase app - push notifications are disabled: {e}")
            self._app = None

    def close(self):
        """Release the Firebase app if one was initialised."""
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None

    def _require_app(self) -> firebase_admin.App:
        if self._app is None:
            raise PushNotConfiguredError("Push notifications are not configured")
        return self._app

    @staticmethod
    def _platform_configs() -> Dict[str, Any]:
        """Android and APNs options applied to every message."""
        return {
            "android": messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(sound="default"),
            ),
            "apns": messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default")),
            ),
        }

    @staticmethod
    def _notification(payload: NotificationPayload) -> messaging.Notification:
        return messaging.Notification(
            title=payload.title,
            body=payload.body,
            image=payload.image or None,
        )

    async def send_to_topic(self, topic: str, payload: NotificationPayload) -> str:
        """Send a notification to every subscriber of a topic.

        Returns:
            The FCM message id
        """
        app = self._require_app()
        message = messaging.Message(
            topic=topic,
            notification=self._notification(payload),
            data=_stringify_data(payload.data),
            **self._platform_configs(),
        )
        message_id = await asyncio.to_thread(messaging.send, message, app=app)
        logger.info(f"Topic message sent to \"{topic}\"")
        return message_id

    async def send_multicast(
        self,
        tokens: List[str],
        payload: NotificationPayload,
    ) -> List[TokenResult]:
        """Send one notification to up to MULTICAST_TOKEN_LIMIT tokens.

        Returns:
            One TokenResult per token, in the same order as ``tokens``
        """
        app = self._require_app()
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=self._notification(payload),
            data=_stringify_data(payload.data),
            **self._platform_configs(),
        )
        batch = await asyncio.to_thread(messaging.send_each_for_multicast, message, app=app)

        return [
            TokenResult(
                token=token,
                success=response.success,
                message_id=response.message_id,
                exception=response.exception,
            )
            for token, response in zip(tokens, batch.responses)
        ]

    async def send_to_devices(
        self,
        session: AsyncSession,
        payload: NotificationPayload,
        platform: Optional[str] = None,
    ) -> SendSummary:
        """Send a notification to all stored devices and drop invalid tokens.

        Args:
            session: Database session
            payload: Notification content
            platform: Only send to devices registered with this platform

        Returns:
            SendSummary with success, failure and removed counts
        """
        self._require_app()

        query = select(Device.token)
        if platform:
            query = query.where(Device.platform == platform)
        result = await session.execute(query)
        tokens = [token for token in result.scalars().all() if token]

        if not tokens:
            logger.info("No registered devices matched, nothing to send")
            return SendSummary()

        summary = SendSummary()
        # Reconcile after every chunk so a later failure keeps earlier removals
        for chunk in _chunks(tokens, MULTICAST_TOKEN_LIMIT):
            results = await self.send_multicast(chunk, payload)
            summary.success_count += sum(1 for r in results if r.success)
            summary.failure_count += sum(1 for r in results if not r.success)
            summary.removed += await self._remove_invalid_tokens(session, results)

        logger.info(
            f"Sent to {summary.success_count}, failed {summary.failure_count}, "
            f"removed {summary.removed}"
        )
        return summary

    async def _remove_invalid_tokens(self, session: AsyncSession, results: List[TokenResult]) -> int:
        """Delete stored devices whose send failed with an invalid-token error."""
        invalid_tokens = [
            r.token for r in results
            if not r.success and is_invalid_token_error(r.exception)
        ]
        if not invalid_tokens:
            return 0

        async def do_delete():
            await session.execute(delete(Device).where(Device.token.in_(invalid_tokens)))
            await session.commit()

        await retry_on_lock(do_delete, session=session)
        for token in invalid_tokens:
            logger.warning(f"Removed invalid token: {token[:16]}...")
        return len(invalid_tokens)

    async def subscribe(self, tokens: List[str], topic: str) -> TopicResult:
        """Subscribe tokens to a topic."""
        app = self._require_app()
        response = await asyncio.to_thread(messaging.subscribe_to_topic, tokens, topic, app=app)
        return TopicResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            errors=[error.reason for error in response.errors],
        )

    async def unsubscribe(self, tokens: List[str], topic: str) -> TopicResult:
        """Unsubscribe tokens from a topic."""
        app = self._require_app()
        response = await asyncio.to_thread(messaging.unsubscribe_from_topic, tokens, topic, app=app)
        return TopicResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            errors=[error.reason for error in response.errors],
        )


# Global instance
push_sender_service = PushSenderService()
