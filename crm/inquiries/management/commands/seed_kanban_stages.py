from django.core.management.base import BaseCommand

from crm.inquiries.kanban import DEFAULT_STAGES
from crm.inquiries.models import KanbanStage


class Command(BaseCommand):
    help = 'Creates the default sales kanban columns (existing columns are left untouched)'

    def handle(self, *args, **options):
        created_count = 0
        for stage in DEFAULT_STAGES:
            _, created = KanbanStage.objects.get_or_create(status=stage['status'], defaults=stage)
            if created:
                created_count += 1
                self.stdout.write(f"  ✓ Created stage {stage['name']}")
            else:
                self.stdout.write(f"  - Skipped {stage['name']} (already exists)")

        self.stdout.write(self.style.SUCCESS(f"\nCompleted: {created_count} stages created"))
