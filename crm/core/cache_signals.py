"""
Cache invalidation signals
Automatically invalidate cached boards and public pages when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_cache, invalidate_cache_pattern, invalidate_inquiry_caches,
    invalidate_shipping_kanban_cache, get_public_invoice_cache_key,
    PORTAL_CUSTOMER_KEY_PREFIX,
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver(post_save, sender='inquiries.Inquiry')
@receiver(post_delete, sender='inquiries.Inquiry')
@receiver(post_save, sender='inquiries.KanbanStage')
@receiver(post_delete, sender='inquiries.KanbanStage')
def invalidate_inquiry_cache(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_inquiry_caches()


@receiver(post_save, sender='vehicles.Vehicle')
@receiver(post_delete, sender='vehicles.Vehicle')
@receiver(post_save, sender='vehicles.VehicleShippingStage')
@receiver(post_save, sender='vehicles.VehicleDocument')
@receiver(post_delete, sender='vehicles.VehicleDocument')
def invalidate_vehicle_cache(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_shipping_kanban_cache()
    invalidate_cache_pattern(PORTAL_CUSTOMER_KEY_PREFIX)


@receiver(post_save, sender='parties.Customer')
@receiver(post_delete, sender='parties.Customer')
def invalidate_customer_cache(sender, instance, **kwargs):
    if is_suspended():
        return
    # Assignment changes alter what restricted users see on the shipping board
    invalidate_shipping_kanban_cache()
    invalidate_cache_pattern(PORTAL_CUSTOMER_KEY_PREFIX)


@receiver(post_save, sender='invoicing.Invoice')
@receiver(post_delete, sender='invoicing.Invoice')
def invalidate_invoice_cache(sender, instance, **kwargs):
    if is_suspended():
        return
    if instance.share_token:
        invalidate_cache(get_public_invoice_cache_key(instance.share_token))
    invalidate_cache_pattern(PORTAL_CUSTOMER_KEY_PREFIX)


@receiver(post_save, sender='invoicing.InvoiceCharge')
@receiver(post_delete, sender='invoicing.InvoiceCharge')
def invalidate_invoice_charge_cache(sender, instance, **kwargs):
    if is_suspended():
        return
    invoice = getattr(instance, 'invoice', None)
    if invoice is not None and invoice.share_token:
        invalidate_cache(get_public_invoice_cache_key(invoice.share_token))


@receiver(post_save, sender='accounting.Transaction')
@receiver(post_delete, sender='accounting.Transaction')
def invalidate_transaction_cache(sender, instance, **kwargs):
    if is_suspended():
        return
    # Portal shows the wallet balance
    if instance.customer_id:
        invalidate_cache_pattern(PORTAL_CUSTOMER_KEY_PREFIX)
