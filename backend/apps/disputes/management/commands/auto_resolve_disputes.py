"""
Management command to move stale open disputes into review.
Intended for cron; safe to run repeatedly.

Usage:
    python manage.py auto_resolve_disputes --dry-run  # Preview
    python manage.py auto_resolve_disputes             # Execute
"""
from django.conf import settings
from django.core.management.base import BaseCommand
from apps.disputes.services.auto_resolution import AutoResolutionSweeper


class Command(BaseCommand):
    help = 'Move open disputes older than the threshold to under_review'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Preview promotions without changing any dispute',
        )
        parser.add_argument(
            '--days',
            type=int,
            default=settings.DISPUTE_AUTO_REVIEW_AFTER_DAYS,
            help=f'Age in days before review (default: {settings.DISPUTE_AUTO_REVIEW_AFTER_DAYS})',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        days = options['days']

        sweeper = AutoResolutionSweeper(threshold_days=days)
        report = sweeper.run(dry_run=dry_run)

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f'DRY RUN: Would move {len(report.promoted)} of {report.examined} '
                    f'open disputes older than {days} days to under_review'
                )
            )
            for dispute_id in report.promoted[:10]:
                self.stdout.write(f'  - {dispute_id}')
            if len(report.promoted) > 10:
                self.stdout.write(f'  ... and {len(report.promoted) - 10} more')
            return

        for dispute_id in report.failed:
            self.stdout.write(self.style.ERROR(f'Failed to move dispute {dispute_id} to review'))

        self.stdout.write(
            self.style.SUCCESS(
                f'Moved {len(report.promoted)} disputes to under_review'
            )
        )
