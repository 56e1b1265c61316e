"""
Tests for participant notification fan-out.
"""
import threading
import uuid
from types import SimpleNamespace
from unittest import mock
from django.test import SimpleTestCase, override_settings
from apps import notifications
from apps.notifications.backends import BaseNotificationBackend, LocmemBackend, LoggingBackend
from apps.notifications.services import NotificationService, get_backend

WALLETS = ['GALICE', 'GBOB', 'GCAROL']


class FakeSplits:
    def __init__(self, wallets=WALLETS, error=None):
        self.wallets = wallets
        self.error = error

    def get_participants(self, split_id):
        if self.error:
            raise self.error
        return [SimpleNamespace(wallet_address=wallet) for wallet in self.wallets]


class FailingFor(BaseNotificationBackend):
    """Fails for the given recipients, records the rest."""

    def __init__(self, *recipients):
        self.recipients = set(recipients)
        self.sent = []
        self.threads = set()
        self.lock = threading.Lock()

    def send(self, notification):
        with self.lock:
            self.threads.add(threading.get_ident())
        if notification.recipient in self.recipients:
            raise ConnectionError(f"mailbox of {notification.recipient} unreachable")
        with self.lock:
            self.sent.append(notification)


def make_dispute():
    return SimpleNamespace(
        id=uuid.uuid4(),
        split_id=uuid.uuid4(),
        dispute_type='incorrect_amount',
        status='open'
    )


class NotificationServiceTestCase(SimpleTestCase):
    """Test all-settled fan-out semantics."""

    def setUp(self):
        notifications.outbox.clear()
        self.dispute = make_dispute()

    def test_notifies_every_participant(self):
        service = NotificationService(split_service=FakeSplits(), backend=LocmemBackend())

        outcomes = service.notify_participants(self.dispute, 'dispute_created')

        self.assertEqual(sorted(o.recipient for o in outcomes), WALLETS)
        self.assertTrue(all(o.delivered for o in outcomes))
        self.assertEqual(len(notifications.outbox), 3)

        sent = notifications.outbox[0]
        self.assertEqual(sent.dispute_id, str(self.dispute.id))
        self.assertEqual(sent.split_id, str(self.dispute.split_id))
        self.assertEqual(sent.event, 'dispute_created')
        self.assertEqual(sent.to_dict()['status'], 'open')

    def test_one_failure_does_not_stop_the_others(self):
        backend = FailingFor('GBOB')
        service = NotificationService(split_service=FakeSplits(), backend=backend)

        with self.assertLogs('apps.notifications.services', level='WARNING'):
            outcomes = service.notify_participants(self.dispute, 'dispute_resolved')

        by_recipient = {o.recipient: o for o in outcomes}
        self.assertFalse(by_recipient['GBOB'].delivered)
        self.assertIn('unreachable', by_recipient['GBOB'].error)
        self.assertTrue(by_recipient['GALICE'].delivered)
        self.assertTrue(by_recipient['GCAROL'].delivered)
        self.assertEqual(sorted(n.recipient for n in backend.sent), ['GALICE', 'GCAROL'])

    def test_all_failing_is_swallowed(self):
        service = NotificationService(
            split_service=FakeSplits(),
            backend=FailingFor(*WALLETS)
        )

        with self.assertLogs('apps.notifications.services', level='ERROR'):
            outcomes = service.notify_participants(self.dispute, 'dispute_rejected')

        self.assertEqual(len(outcomes), 3)
        self.assertFalse(any(o.delivered for o in outcomes))

    def test_participant_lookup_failure_is_swallowed(self):
        service = NotificationService(
            split_service=FakeSplits(error=RuntimeError('splits down')),
            backend=LocmemBackend()
        )

        with self.assertLogs('apps.notifications.services', level='ERROR'):
            outcomes = service.notify_participants(self.dispute, 'dispute_created')

        self.assertEqual(outcomes, [])
        self.assertEqual(notifications.outbox, [])

    def test_no_participants(self):
        service = NotificationService(split_service=FakeSplits(wallets=[]), backend=LocmemBackend())

        self.assertEqual(service.notify_participants(self.dispute, 'dispute_created'), [])

    @override_settings(DISPUTE_NOTIFICATION_MAX_WORKERS=1)
    def test_worker_limit(self):
        backend = FailingFor()
        service = NotificationService(split_service=FakeSplits(), backend=backend)

        outcomes = service.notify_participants(self.dispute, 'under_review')

        self.assertEqual(len(outcomes), 3)
        self.assertEqual(len(backend.threads), 1)

    @override_settings(DISPUTE_NOTIFICATION_BACKEND='apps.notifications.backends.LoggingBackend')
    def test_backend_from_settings(self):
        self.assertIsInstance(get_backend(), LoggingBackend)

        service = NotificationService(split_service=FakeSplits(wallets=['GALICE']))
        with self.assertLogs('apps.notifications.backends', level='INFO') as logs:
            service.notify_participants(self.dispute, 'dispute_appealed')

        self.assertIn('GALICE', logs.output[0])

    def test_unconfigured_backend_is_swallowed(self):
        with mock.patch('apps.notifications.services.get_backend', side_effect=ImportError('nope')):
            service = NotificationService(split_service=FakeSplits())
            with self.assertLogs('apps.notifications.services', level='ERROR'):
                self.assertEqual(service.notify_participants(self.dispute, 'dispute_created'), [])
