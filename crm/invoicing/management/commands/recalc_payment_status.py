from django.core.management.base import BaseCommand, CommandError

from crm.invoicing.models import Invoice
from crm.invoicing.services import (
    get_invoice_total, get_invoice_received, recalc_invoice_payment_status, sync_vehicle_payment_summary,
)
from crm.invoicing.totals import derive_payment_status


class Command(BaseCommand):
    help = 'Recalculates invoice payment statuses from their incoming transactions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--invoice',
            type=str,
            default=None,
            help='Only this invoice (id or invoice number)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report changes without saving them',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        queryset = Invoice.objects.all().order_by('id')

        if options['invoice']:
            value = options['invoice']
            queryset = queryset.filter(id=int(value)) if value.isdigit() else queryset.filter(invoice_number=value)
            if not queryset.exists():
                raise CommandError(f"Invoice '{value}' not found")

        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        changed = 0
        vehicle_ids = set()
        for invoice in queryset:
            old_status = invoice.payment_status
            if dry_run:
                new_status = derive_payment_status(get_invoice_received(invoice), get_invoice_total(invoice))
            else:
                new_status = recalc_invoice_payment_status(invoice)
                vehicle_ids.add(invoice.vehicle_id)
            if new_status != old_status:
                changed += 1
                self.stdout.write(f"  - {invoice.invoice_number}: {old_status} -> {new_status}")

        for vehicle_id in vehicle_ids:
            sync_vehicle_payment_summary(vehicle_id)

        self.stdout.write(self.style.SUCCESS(f"\n{changed} invoice(s) {'would change' if dry_run else 'updated'}."))
