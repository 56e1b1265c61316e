"""
Base test classes and fixtures for dispute tests.
"""
from datetime import timedelta
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient
from apps import notifications
from apps.disputes.models import Dispute, DisputeStatus, DisputeType
from apps.disputes.services.dispute_service import DisputeService
from apps.splits.models import Split, SplitParticipant

User = get_user_model()

P1 = 'GP1WALLETAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA'
P2 = 'GP2WALLETBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB'
OUTSIDER = 'GOUTSIDERCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCC'
ADMIN = 'admin1'


class BaseDisputeTestCase(TestCase):
    """Base test case with a two-participant split and users for each identity."""

    def setUp(self):
        """Set up test fixtures."""
        notifications.outbox.clear()

        self.client = APIClient()
        self.service = DisputeService()

        self.split = self.create_split()

        self.p1_user = User.objects.create_user(username=P1, password='testpass123')
        self.p2_user = User.objects.create_user(username=P2, password='testpass123')
        self.outsider_user = User.objects.create_user(username=OUTSIDER, password='testpass123')
        self.admin_user = User.objects.create_user(
            username=ADMIN,
            password='testpass123',
            is_staff=True
        )

    def authenticate(self, user=None):
        """Authenticate a user for API requests."""
        self.client.force_authenticate(user=user or self.p1_user)

    def create_split(self, participants=(P1, P2), amount=Decimal('100')):
        split = Split.objects.create(
            title='Dinner',
            total_amount=amount * len(participants),
            creator=participants[0]
        )
        for wallet in participants:
            SplitParticipant.objects.create(
                split=split,
                wallet_address=wallet,
                amount_owed=amount
            )
        return split

    def create_dispute(self, split=None, raised_by=P1, **kwargs):
        kwargs.setdefault('dispute_type', DisputeType.INCORRECT_AMOUNT)
        kwargs.setdefault('description', 'I was charged for a dish I did not order')
        return self.service.create_dispute(
            split_id=(split or self.split).id,
            raised_by=raised_by,
            **kwargs
        )

    def create_resolved_dispute(self, split=None):
        dispute = self.create_dispute(split=split)
        self.service.update_status(dispute.id, DisputeStatus.UNDER_REVIEW, changed_by=ADMIN)
        return self.service.resolve_dispute(
            dispute.id,
            decision='split 60/40',
            reasoning='Receipt shows the extra dish',
            resolved_by=ADMIN
        )

    def backdate(self, dispute, days):
        created_at = timezone.now() - timedelta(days=days)
        Dispute.objects.filter(pk=dispute.pk).update(created_at=created_at)
        dispute.refresh_from_db()
        return dispute

    def sent_events(self):
        """(recipient, event) pairs delivered through the locmem backend."""
        return {(n.recipient, n.event) for n in notifications.outbox}

    def refresh(self, obj):
        obj.refresh_from_db()
        return obj
