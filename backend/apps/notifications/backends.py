"""
Notification delivery backends.
Selected with settings.DISPUTE_NOTIFICATION_BACKEND.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisputeNotification:
    """Payload sent to one participant about one dispute event."""
    recipient: str
    dispute_id: str
    split_id: str
    event: str
    dispute_type: str
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BaseNotificationBackend:
    """
    Base class for delivery backends.
    send() raises on delivery failure; callers decide what to do with it.
    """

    def send(self, notification: DisputeNotification) -> None:
        raise NotImplementedError('subclasses of BaseNotificationBackend must override send()')


class LoggingBackend(BaseNotificationBackend):
    """Writes notifications to the application log."""

    def send(self, notification: DisputeNotification) -> None:
        logger.info(
            f"[DISPUTE {notification.event}] dispute {notification.dispute_id} "
            f"({notification.status}) -> {notification.recipient}"
        )


class LocmemBackend(BaseNotificationBackend):
    """Stores notifications in apps.notifications.outbox."""

    def send(self, notification: DisputeNotification) -> None:
        from apps import notifications
        notifications.outbox.append(notification)
