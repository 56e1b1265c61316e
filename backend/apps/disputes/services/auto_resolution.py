"""
Auto-review sweep: moves stale OPEN disputes to UNDER_REVIEW.
Run periodically via the auto_resolve_disputes management command.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional
from django.conf import settings
from django.utils import timezone
from apps.disputes.models import Dispute, DisputeStatus

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = 'system:auto-review'


@dataclass
class SweepReport:
    examined: int = 0
    promoted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'examined': self.examined,
            'promoted': list(self.promoted),
            'failed': list(self.failed),
        }


class AutoResolutionSweeper:
    """
    Escalates OPEN disputes older than the configured threshold.

    One dispute failing never stops the sweep; it is logged and reported.
    """

    def __init__(self, dispute_service=None, threshold_days: Optional[int] = None):
        if dispute_service is None:
            from apps.disputes.services.dispute_service import DisputeService
            dispute_service = DisputeService()
        if threshold_days is None:
            threshold_days = settings.DISPUTE_AUTO_REVIEW_AFTER_DAYS
        self.dispute_service = dispute_service
        self.threshold_days = threshold_days

    def due_disputes(self, now=None):
        """OPEN disputes whose age is at least the threshold, oldest first."""
        now = now or timezone.now()
        cutoff = now - timedelta(days=self.threshold_days)
        return Dispute.objects.filter(
            status=DisputeStatus.OPEN,
            created_at__lte=cutoff
        ).order_by('created_at')

    def run(self, now=None, dry_run: bool = False) -> SweepReport:
        """
        Args:
            now: Reference time (defaults to timezone.now())
            dry_run: Report due disputes without changing them

        Returns:
            SweepReport with promoted and failed dispute ids
        """
        now = now or timezone.now()
        report = SweepReport()
        report.examined = Dispute.objects.filter(status=DisputeStatus.OPEN).count()

        for dispute_id in list(self.due_disputes(now).values_list('id', flat=True)):
            if dry_run:
                report.promoted.append(str(dispute_id))
                continue

            try:
                self.dispute_service.update_status(
                    dispute_id,
                    DisputeStatus.UNDER_REVIEW,
                    changed_by=SYSTEM_ACTOR
                )
            except Exception:
                logger.exception(f"Auto-review failed for dispute {dispute_id}")
                report.failed.append(str(dispute_id))
            else:
                report.promoted.append(str(dispute_id))

        logger.info(
            f"Auto-review sweep: {report.examined} open, "
            f"{len(report.promoted)} promoted, {len(report.failed)} failed"
        )
        return report
