"""
Dispute statistics aggregation.
"""
from datetime import timedelta
from typing import Any, Dict, Iterable
from apps.disputes.models import DisputeStatus, DisputeType

ONE_HOUR = timedelta(hours=1)


def compute_statistics(disputes: Iterable) -> Dict[str, Any]:
    """
    Aggregate counts and mean resolution time over a set of disputes.

    Every status and type key is present, zero when unseen. The average is
    taken over disputes with resolved_at set, in hours; 0 if there are none.
    """
    by_status = {choice.value: 0 for choice in DisputeStatus}
    by_type = {choice.value: 0 for choice in DisputeType}
    total = 0
    resolved = 0
    resolution_time = timedelta()

    for dispute in disputes:
        total += 1
        by_status[dispute.status] = by_status.get(dispute.status, 0) + 1
        by_type[dispute.dispute_type] = by_type.get(dispute.dispute_type, 0) + 1

        if dispute.resolved_at is not None:
            resolved += 1
            resolution_time += dispute.resolved_at - dispute.created_at

    return {
        'total': total,
        'by_status': by_status,
        'by_type': by_type,
        'average_resolution_time': (resolution_time / ONE_HOUR) / resolved if resolved else 0,
    }
