"""
Dispute state machine service.
Handles generic status transitions with validation and audit logging.
"""
import logging
from django.db import transaction
from common.exceptions import InvalidRequest, NotFound
from apps.disputes.models import Dispute, DisputeStatus, DisputeStatusLog

logger = logging.getLogger(__name__)


class InvalidTransition(InvalidRequest):
    """Requested status is not reachable from the current one."""
    default_code = 'invalid_transition'

    def __init__(self, current_status: str, requested_status: str):
        super().__init__(
            f"Invalid status transition from {current_status} to {requested_status}",
            context={
                'current_status': str(current_status),
                'requested_status': str(requested_status),
            }
        )
        self.current_status = current_status
        self.requested_status = requested_status


class DisputeStateMachine:
    """
    Dispute state machine with strict transition rules.

    APPEALED is assigned at creation to appeal disputes; the dedicated
    resolve/reject/appeal operations check their own preconditions and
    record their changes through record().
    """

    # Valid status transitions
    TRANSITIONS = {
        DisputeStatus.OPEN: [DisputeStatus.UNDER_REVIEW, DisputeStatus.REJECTED],
        DisputeStatus.UNDER_REVIEW: [DisputeStatus.RESOLVED, DisputeStatus.REJECTED],
        DisputeStatus.RESOLVED: [DisputeStatus.APPEALED],
        DisputeStatus.REJECTED: [DisputeStatus.APPEALED],
        DisputeStatus.APPEALED: [
            DisputeStatus.UNDER_REVIEW,
            DisputeStatus.RESOLVED,
            DisputeStatus.REJECTED,
        ],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if transition is valid."""
        return to_status in cls.TRANSITIONS.get(from_status, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """
        Raises:
            InvalidTransition: If the edge is not in TRANSITIONS
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransition(from_status, to_status)

    @classmethod
    @transaction.atomic
    def transition(
        cls,
        dispute: Dispute,
        to_status: str,
        changed_by: str = "",
        reason: str = ""
    ) -> Dispute:
        """
        Transition dispute to new status with validation.

        Uses select_for_update so the validated status is the one replaced.

        Args:
            dispute: Dispute instance
            to_status: Target status
            changed_by: Identity making the change ("" for system)
            reason: Reason for transition

        Returns:
            Updated dispute

        Raises:
            InvalidTransition: If transition is invalid
        """
        try:
            locked_dispute = Dispute.objects.select_for_update().get(id=dispute.id)
        except Dispute.DoesNotExist:
            raise NotFound(f"Dispute {dispute.id} not found", context={'dispute_id': str(dispute.id)})

        cls.validate_transition(locked_dispute.status, to_status)

        old_status = locked_dispute.status
        locked_dispute.status = to_status
        locked_dispute.save(update_fields=['status', 'updated_at'])

        cls.record(locked_dispute, old_status, to_status, changed_by=changed_by, reason=reason)

        return locked_dispute

    @staticmethod
    def record(
        dispute: Dispute,
        from_status: str,
        to_status: str,
        changed_by: str = "",
        reason: str = ""
    ) -> DisputeStatusLog:
        """Append a status change to the audit trail."""
        logger.info(f"Dispute {dispute.id}: {from_status or '-'} -> {to_status}")
        return DisputeStatusLog.objects.create(
            dispute=dispute,
            from_status=from_status or "",
            to_status=to_status,
            changed_by=changed_by or "",
            reason=reason or ""
        )
