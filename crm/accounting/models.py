from django.db import models
from crm.core.models import User
from crm.parties.models import Customer, Vendor
from crm.vehicles.models import Vehicle, VehicleStageCost
from crm.invoicing.models import Invoice, CostItem


class Transaction(models.Model):
    """Money in or out: customer payments, deposits, vendor payments, refunds"""
    DIRECTION_INCOMING = 'INCOMING'
    DIRECTION_OUTGOING = 'OUTGOING'

    DIRECTION_CHOICES = [
        (DIRECTION_INCOMING, 'Incoming'),
        (DIRECTION_OUTGOING, 'Outgoing'),
    ]

    TYPE_CHOICES = [
        ('BANK_TRANSFER', 'Bank Transfer'),
        ('PAYPAL', 'PayPal'),
        ('CASH', 'Cash'),
        ('WISE', 'Wise'),
    ]

    direction = models.CharField(max_length=10, choices=DIRECTION_CHOICES)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='JPY')
    date = models.DateField()
    description = models.CharField(max_length=255, blank=True, null=True)
    vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    vehicle = models.ForeignKey(Vehicle, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    invoice = models.ForeignKey(Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    vehicle_stage_cost = models.ForeignKey(VehicleStageCost, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    cost_item = models.ForeignKey(CostItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    reference_number = models.CharField(max_length=100, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='transactions')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.direction} {self.amount} {self.currency} ({self.date})"

    class Meta:
        db_table = 'transactions'
        ordering = ['-date', '-created_at']
        indexes = [
            models.Index(fields=['-date'], name='transaction_date_3f8a2c_idx'),
            models.Index(fields=['customer', 'direction'], name='transaction_custome_5d1b7e_idx'),
            models.Index(fields=['invoice', 'direction'], name='transaction_invoice_a0c64f_idx'),
        ]


class GeneralCost(models.Model):
    """Overhead not tied to a vehicle (rent, software, salaries)"""
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='JPY')
    date = models.DateField()
    category = models.CharField(max_length=100, blank=True, null=True)
    vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='general_costs')
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='general_costs')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.description

    class Meta:
        db_table = 'general_costs'
        ordering = ['-date']
