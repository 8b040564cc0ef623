from django.conf import settings
from django.core.management.base import BaseCommand

from crm.inquiries.services import expired_assignments, release_expired_assignments


class Command(BaseCommand):
    help = 'Releases inquiries assigned for too long without being won back into the pool'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help=f'Assignment age in days (default: INQUIRY_ASSIGNMENT_TTL_DAYS={settings.INQUIRY_ASSIGNMENT_TTL_DAYS})',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the inquiries that would be released without changing them',
        )

    def handle(self, *args, **options):
        days = options['days'] if options['days'] is not None else settings.INQUIRY_ASSIGNMENT_TTL_DAYS
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        for inquiry in expired_assignments(days).select_related('assigned_to'):
            self.stdout.write(
                f"  - Inquiry {inquiry.id} ({inquiry.customer_name}) held by "
                f"{inquiry.assigned_to.username} since {inquiry.assigned_at:%Y-%m-%d}"
            )

        released = release_expired_assignments(days=days, dry_run=dry_run)
        if dry_run:
            self.stdout.write(self.style.WARNING(f"\nDry run complete: {released} inquiries would be released."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nReleased {released} inquiries older than {days} days."))
