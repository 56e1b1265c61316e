"""
Notification service - concurrent, best-effort participant fan-out.
Failures are logged and never propagate to the triggering operation.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional
from django.conf import settings
from django.utils.module_loading import import_string
from apps.notifications.backends import BaseNotificationBackend, DisputeNotification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationOutcome:
    """Settled result of one send."""
    recipient: str
    delivered: bool
    error: Optional[str] = None


def get_backend() -> BaseNotificationBackend:
    """Instantiate the configured delivery backend."""
    return import_string(settings.DISPUTE_NOTIFICATION_BACKEND)()


class NotificationService:
    """
    Fans dispute events out to every participant of the disputed split.
    """

    def __init__(self, split_service=None, backend: Optional[BaseNotificationBackend] = None):
        if split_service is None:
            from apps.splits.services.split_service import split_service as default_split_service
            split_service = default_split_service
        self.split_service = split_service
        self.backend = backend

    def notify_participants(self, dispute, event: str) -> List[NotificationOutcome]:
        """
        Send one notification per participant and wait for all of them.

        Args:
            dispute: Dispute the event is about
            event: Lifecycle event name

        Returns:
            One outcome per participant (empty if participants could not be loaded)
        """
        try:
            participants = self.split_service.get_participants(dispute.split_id)
            backend = self.backend or get_backend()
        except Exception:
            logger.exception(f"Failed to prepare {event} notifications for dispute {dispute.id}")
            return []

        notifications = [
            DisputeNotification(
                recipient=participant.wallet_address,
                dispute_id=str(dispute.id),
                split_id=str(dispute.split_id),
                event=event,
                dispute_type=dispute.dispute_type,
                status=dispute.status,
            )
            for participant in participants
        ]
        if not notifications:
            return []

        max_workers = min(len(notifications), settings.DISPUTE_NOTIFICATION_MAX_WORKERS)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                (notification, executor.submit(backend.send, notification))
                for notification in notifications
            ]
            outcomes = [self._settle(notification, future) for notification, future in futures]

        failed = [outcome for outcome in outcomes if not outcome.delivered]
        if failed:
            logger.error(
                f"{len(failed)}/{len(outcomes)} {event} notifications failed for dispute {dispute.id}"
            )

        return outcomes

    @staticmethod
    def _settle(notification: DisputeNotification, future) -> NotificationOutcome:
        try:
            future.result()
        except Exception as e:
            logger.warning(f"Notification to {notification.recipient} failed: {e}")
            return NotificationOutcome(recipient=notification.recipient, delivered=False, error=str(e))
        return NotificationOutcome(recipient=notification.recipient, delivered=True)
