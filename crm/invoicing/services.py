"""
Invoice bookkeeping that touches the database: numbering, payment status
resync, vehicle payment summaries and cost invoice metrics.
"""
import logging
import re

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from crm.accounting.models import Transaction
from crm.vehicles.models import VehicleShippingStage
from .models import Invoice, CostInvoice, SharedInvoice, SharedInvoiceVehicle
from .totals import (
    ZERO, invoice_total_with_tax, derive_payment_status, is_amount_paid_in_full,
    profit_metrics, quantize, split_evenly, to_decimal,
)

logger = logging.getLogger(__name__)

INVOICE_NUMBER_ATTEMPTS = 3


def invoice_number_prefix(year=None):
    year = year or timezone.localdate().year
    return f"{getattr(settings, 'INVOICE_NUMBER_PREFIX', 'AUC')}-{year}-"


def _next_number(model, prefix):
    pattern = re.compile(rf'^{re.escape(prefix)}(\d+)$')
    last_number = 0
    for number in model.objects.filter(invoice_number__startswith=prefix).values_list('invoice_number', flat=True):
        match = pattern.match(number)
        if match:
            last_number = max(last_number, int(match.group(1)))
    return f"{prefix}{last_number + 1:03d}"


def generate_invoice_number(year=None):
    """
    Next invoice number for the year: AUC-2025-001, AUC-2025-002, ...

    Numbers are compared numerically so the sequence keeps working past 999.
    Callers create the invoice inside the same transaction and retry on a
    unique constraint violation.
    """
    return _next_number(Invoice, invoice_number_prefix(year))


def generate_shared_invoice_number(invoice_type, year=None):
    """Shared invoices are numbered per type: FORWARDER-2025-001, CONTAINER-2025-001, ..."""
    year = year or timezone.localdate().year
    return _next_number(SharedInvoice, f"{invoice_type}-{year}-")


def get_invoice_total(invoice):
    charges = invoice.charges.select_related('charge_type').all()
    return invoice_total_with_tax(charges, invoice.tax_enabled, invoice.tax_rate)


def get_invoice_received(invoice):
    amounts = Transaction.objects.filter(
        invoice_id=invoice.pk, direction=Transaction.DIRECTION_INCOMING
    ).values_list('amount', flat=True)
    return sum((to_decimal(a) for a in amounts), ZERO)


def recalc_invoice_payment_status(invoice):
    """
    Recalculate and store the payment status of ``invoice`` from its
    INCOMING transactions. Call after charges or transactions change.
    """
    if invoice is None:
        return None
    if not isinstance(invoice, Invoice):
        invoice = Invoice.objects.filter(pk=invoice).first()
        if invoice is None:
            return None

    total_amount = get_invoice_total(invoice)
    total_received = get_invoice_received(invoice)
    payment_status = derive_payment_status(total_received, total_amount)

    old_status = invoice.payment_status
    invoice.payment_status = payment_status
    if payment_status == Invoice.PAYMENT_PAID:
        invoice.paid_at = invoice.paid_at or timezone.now()
    else:
        invoice.paid_at = None
    invoice.save(update_fields=['payment_status', 'paid_at', 'updated_at'])

    if old_status != payment_status:
        logger.info(f"Invoice {invoice.invoice_number} payment status {old_status} -> {payment_status} (received {total_received} of {quantize(total_amount)})")
    return payment_status


def get_vehicle_payment_summary(vehicle_id):
    """Charges invoiced for a vehicle against what has been received for it"""
    received = Transaction.objects.filter(
        Q(vehicle_id=vehicle_id) | Q(invoice__vehicle_id=vehicle_id),
        direction=Transaction.DIRECTION_INCOMING,
    ).values_list('amount', flat=True)
    total_received = sum((to_decimal(a) for a in received), ZERO)

    total_charges = ZERO
    for invoice in Invoice.objects.filter(vehicle_id=vehicle_id).prefetch_related('charges__charge_type'):
        total_charges += invoice_total_with_tax(invoice.charges.all(), invoice.tax_enabled, invoice.tax_rate)

    purchase_paid = total_charges > 0 and is_amount_paid_in_full(total_received, total_charges)
    return {
        'total_charges': quantize(total_charges),
        'total_received': quantize(total_received),
        'purchase_paid': purchase_paid,
    }


def sync_vehicle_payment_summary(vehicle_id):
    """Store the payment summary on the vehicle's shipping stage record"""
    if not vehicle_id:
        return None
    summary = get_vehicle_payment_summary(vehicle_id)
    stage, _ = VehicleShippingStage.objects.update_or_create(
        vehicle_id=vehicle_id,
        defaults=summary,
    )
    return stage


def move_invoice_to_vehicle(invoice, old_vehicle_id):
    """
    Follow an invoice that changed vehicle or customer: the vehicle takes the
    invoice's customer, payments recorded against the invoice follow it, and
    the previous vehicle's payment summary drops the invoice.
    """
    vehicle = invoice.vehicle
    if vehicle.customer_id != invoice.customer_id:
        vehicle.customer_id = invoice.customer_id
        vehicle.save(update_fields=['customer', 'updated_at'])
    if old_vehicle_id != invoice.vehicle_id:
        Transaction.objects.filter(invoice_id=invoice.pk, vehicle_id=old_vehicle_id).update(vehicle_id=invoice.vehicle_id)
        sync_vehicle_payment_summary(old_vehicle_id)
        logger.info(f"Invoice {invoice.invoice_number} moved from vehicle {old_vehicle_id} to {invoice.vehicle_id}")


def sync_cost_invoice(cost_invoice):
    """Refresh revenue, cost, profit, margin and ROI of a cost invoice"""
    invoice = cost_invoice.invoice
    revenue = get_invoice_total(invoice)
    cost = sum((to_decimal(a) for a in cost_invoice.items.values_list('amount', flat=True)), ZERO)
    cost += get_vehicle_shared_costs(invoice.vehicle_id)
    metrics = profit_metrics(revenue, cost)
    for field, value in metrics.items():
        setattr(cost_invoice, field, value)
    cost_invoice.save(update_fields=list(metrics.keys()) + ['updated_at'])
    return metrics


def get_or_create_cost_invoice(invoice):
    cost_invoice, created = CostInvoice.objects.get_or_create(invoice=invoice)
    if created:
        logger.info(f"Created cost invoice for {invoice.invoice_number}")
    return cost_invoice


def get_vehicle_shared_costs(vehicle_id):
    """Sum of the vehicle's shares in shared invoices"""
    amounts = SharedInvoiceVehicle.objects.filter(vehicle_id=vehicle_id).values_list('allocated_amount', flat=True)
    return sum((to_decimal(a) for a in amounts), ZERO)


def sync_vehicle_cost_invoices(vehicle_ids):
    """Recalculate the cost invoices of every invoice issued for ``vehicle_ids``"""
    for invoice in Invoice.objects.filter(vehicle_id__in=vehicle_ids):
        sync_cost_invoice(get_or_create_cost_invoice(invoice))


def allocate_shared_invoice(shared_invoice, vehicle_ids):
    """
    Split a shared invoice evenly over ``vehicle_ids``, replacing the current
    allocation, and refresh the cost invoices of every vehicle involved.
    """
    previous = set(shared_invoice.allocations.values_list('vehicle_id', flat=True))
    shared_invoice.allocations.all().delete()
    shares = split_evenly(shared_invoice.total_amount, len(vehicle_ids))
    SharedInvoiceVehicle.objects.bulk_create([
        SharedInvoiceVehicle(shared_invoice=shared_invoice, vehicle_id=vehicle_id, allocated_amount=share)
        for vehicle_id, share in zip(vehicle_ids, shares)
    ])
    sync_vehicle_cost_invoices(previous | set(vehicle_ids))
    logger.info(f"Shared invoice {shared_invoice.invoice_number} split over {len(vehicle_ids)} vehicle(s)")


def delete_shared_invoice(shared_invoice):
    vehicle_ids = list(shared_invoice.allocations.values_list('vehicle_id', flat=True))
    shared_invoice.delete()
    sync_vehicle_cost_invoices(vehicle_ids)


def default_payment_link():
    return settings.DEFAULT_WISE_PAYMENT_LINK or None


def create_invoice(serializer, user, status):
    """
    Save a validated invoice serializer under the next free invoice number.

    Two invoices created at the same moment can draw the same number; the
    loser of the unique constraint retries with a fresh one.
    """
    for attempt in range(1, INVOICE_NUMBER_ATTEMPTS + 1):
        invoice_number = generate_invoice_number()
        try:
            with transaction.atomic():
                return serializer.save(
                    invoice_number=invoice_number,
                    created_by=user,
                    status=status,
                    wise_payment_link=default_payment_link(),
                )
        except IntegrityError:
            if attempt == INVOICE_NUMBER_ATTEMPTS:
                raise
            logger.warning(f"Invoice number {invoice_number} already taken, retrying (attempt {attempt})")


def create_shared_invoice(serializer, user, vehicle_ids):
    """Save a validated shared invoice under the next number for its type and split it"""
    invoice_type = serializer.validated_data['type']
    for attempt in range(1, INVOICE_NUMBER_ATTEMPTS + 1):
        invoice_number = generate_shared_invoice_number(invoice_type)
        try:
            with transaction.atomic():
                shared_invoice = serializer.save(invoice_number=invoice_number, created_by=user)
                allocate_shared_invoice(shared_invoice, vehicle_ids)
                return shared_invoice
        except IntegrityError:
            if attempt == INVOICE_NUMBER_ATTEMPTS:
                raise
            logger.warning(f"Shared invoice number {invoice_number} already taken, retrying (attempt {attempt})")
