"""Side effects of creating, editing or deleting a transaction"""
import logging

from crm.invoicing.models import Invoice
from crm.invoicing.services import recalc_invoice_payment_status, sync_vehicle_payment_summary
from .models import Transaction

logger = logging.getLogger(__name__)


def transaction_links(tx):
    """Snapshot of what a transaction touches, taken before it changes"""
    if tx is None:
        return {'invoice_id': None, 'vehicle_id': None}
    vehicle_id = tx.vehicle_id
    if vehicle_id is None and tx.invoice_id:
        vehicle_id = Invoice.objects.filter(pk=tx.invoice_id).values_list('vehicle_id', flat=True).first()
    return {'invoice_id': tx.invoice_id, 'vehicle_id': vehicle_id}


def sync_paid_cost(tx):
    """An outgoing payment marks the stage cost or cost item it settles as paid on its date"""
    if tx.direction != Transaction.DIRECTION_OUTGOING:
        return
    if tx.vehicle_stage_cost_id:
        tx.vehicle_stage_cost.payment_date = tx.date
        tx.vehicle_stage_cost.save(update_fields=['payment_date'])
    if tx.cost_item_id:
        tx.cost_item.payment_date = tx.date
        tx.cost_item.save(update_fields=['payment_date'])


def resync_after_transaction_change(*link_sets):
    """
    Recalculate invoice payment statuses and vehicle payment summaries for
    every invoice and vehicle referenced by the given link snapshots.
    """
    invoice_ids = {links['invoice_id'] for links in link_sets if links['invoice_id']}
    vehicle_ids = {links['vehicle_id'] for links in link_sets if links['vehicle_id']}

    for invoice_id in invoice_ids:
        recalc_invoice_payment_status(invoice_id)
    for vehicle_id in vehicle_ids:
        sync_vehicle_payment_summary(vehicle_id)
    if invoice_ids or vehicle_ids:
        logger.debug(f"Resynced invoices {sorted(invoice_ids)} and vehicles {sorted(vehicle_ids)}")
