from decimal import Decimal

from django.db import models
from crm.core.models import User
from crm.parties.models import Customer, Vendor
from crm.vehicles.models import Vehicle


class ChargeType(models.Model):
    """Named charge category. "Discount" and "Deposit" reduce the invoice total."""
    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'charge_types'
        ordering = ['name']


class Invoice(models.Model):
    """Customer invoice for a vehicle"""
    STATUS_DRAFT = 'DRAFT'
    STATUS_PENDING_APPROVAL = 'PENDING_APPROVAL'
    STATUS_APPROVED = 'APPROVED'
    STATUS_FINALIZED = 'FINALIZED'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_PENDING_APPROVAL, 'Pending Approval'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_FINALIZED, 'Finalized'),
    ]

    PAYMENT_PENDING = 'PENDING'
    PAYMENT_PARTIALLY_PAID = 'PARTIALLY_PAID'
    PAYMENT_PAID = 'PAID'

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PARTIALLY_PAID, 'Partially Paid'),
        (PAYMENT_PAID, 'Paid'),
    ]

    SHAREABLE_STATUSES = (STATUS_APPROVED, STATUS_FINALIZED)

    invoice_number = models.CharField(max_length=50, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='invoices')
    vehicle = models.ForeignKey(Vehicle, on_delete=models.PROTECT, related_name='invoices')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_invoices')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    issue_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    tax_enabled = models.BooleanField(default=False)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('10.00'))
    customer_uses_in_japan = models.BooleanField(default=False)
    notes = models.TextField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)
    wise_payment_link = models.URLField(max_length=500, blank=True, null=True)
    share_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    is_locked = models.BooleanField(default=False)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_invoices')
    approved_at = models.DateTimeField(null=True, blank=True)
    finalized_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='finalized_invoices')
    finalized_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    class Meta:
        db_table = 'invoices'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='invoices_status_6a1c3b_idx'),
            models.Index(fields=['created_by', 'status'], name='invoices_created_94d7e0_idx'),
        ]


class InvoiceCharge(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='charges')
    charge_type = models.ForeignKey(ChargeType, on_delete=models.SET_NULL, null=True, blank=True, related_name='charges')
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'invoice_charges'
        ordering = ['id']


class CostInvoice(models.Model):
    """Internal profit and loss sheet attached to a customer invoice"""
    invoice = models.OneToOneField(Invoice, on_delete=models.CASCADE, related_name='cost_invoice')
    total_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    profit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    margin = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    roi = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cost_invoices'


class CostItem(models.Model):
    cost_invoice = models.ForeignKey(CostInvoice, on_delete=models.CASCADE, related_name='items')
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    category = models.CharField(max_length=100, blank=True, null=True)
    vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='cost_items')
    payment_deadline = models.DateField(null=True, blank=True)
    payment_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'cost_items'
        ordering = ['id']


class SharedInvoice(models.Model):
    """
    Vendor invoice covering several vehicles, e.g. a forwarder bill or a
    shared container. The total is split evenly across the linked vehicles
    and each share counts as a cost on that vehicle's cost invoices.
    """
    TYPE_FORWARDER = 'FORWARDER'
    TYPE_CONTAINER = 'CONTAINER'

    type = models.CharField(max_length=50)
    invoice_number = models.CharField(max_length=70, unique=True)
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name='shared_invoices')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    date = models.DateField(null=True, blank=True)
    payment_deadline = models.DateField()
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_shared_invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    class Meta:
        db_table = 'shared_invoices'
        ordering = ['-created_at']


class SharedInvoiceVehicle(models.Model):
    shared_invoice = models.ForeignKey(SharedInvoice, on_delete=models.CASCADE, related_name='allocations')
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='shared_invoice_allocations')
    allocated_amount = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'shared_invoice_vehicles'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['shared_invoice', 'vehicle'], name='unique_shared_invoice_vehicle'),
        ]
