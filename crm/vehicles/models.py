from decimal import Decimal

from django.db import models
from crm.core.models import User
from crm.parties.models import Customer, Vendor
from crm.inquiries.models import Inquiry


# Export lifecycle, in order. DHL is the final hand-over of documents ("Completed").
SHIPPING_STAGE_CHOICES = [
    ('PURCHASE', 'Purchase'),
    ('TRANSPORT', 'Transport'),
    ('REPAIR', 'Repair'),
    ('DOCUMENTS', 'Documents'),
    ('BOOKING', 'Booking'),
    ('SHIPPED', 'Shipped'),
    ('DHL', 'Completed'),
]

SHIPPING_STAGES = [choice[0] for choice in SHIPPING_STAGE_CHOICES]


class Yard(models.Model):
    """Storage yard a vehicle is delivered to before shipping"""
    name = models.CharField(max_length=200)
    address = models.TextField(blank=True, null=True)
    contact_person = models.CharField(max_length=200, blank=True, null=True)
    phone = models.CharField(max_length=40, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='yards')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'yards'
        ordering = ['name']


class Vehicle(models.Model):
    """Vehicle bought on behalf of a customer and exported"""
    vin = models.CharField(max_length=64, unique=True)
    make = models.CharField(max_length=100, blank=True, null=True)
    model = models.CharField(max_length=100, blank=True, null=True)
    year = models.PositiveIntegerField(null=True, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='vehicles')
    inquiry = models.ForeignKey(Inquiry, on_delete=models.SET_NULL, null=True, blank=True, related_name='vehicles')
    current_shipping_stage = models.CharField(max_length=20, choices=SHIPPING_STAGE_CHOICES, null=True, blank=True, db_index=True)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_vehicles')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        label = ' '.join(str(p) for p in [self.year, self.make, self.model] if p)
        return f"{label} ({self.vin})" if label else self.vin

    class Meta:
        db_table = 'vehicles'
        ordering = ['-created_at']


class VehicleShippingStage(models.Model):
    """Checklist and logistics details for a vehicle's export"""
    BOOKING_TYPE_CHOICES = [
        ('RORO', 'RoRo'),
        ('CONTAINER', 'Container'),
    ]
    BOOKING_STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('CONFIRMED', 'Confirmed'),
        ('CANCELLED', 'Cancelled'),
    ]

    vehicle = models.OneToOneField(Vehicle, on_delete=models.CASCADE, related_name='shipping_stage')
    stage = models.CharField(max_length=20, choices=SHIPPING_STAGE_CHOICES, default='PURCHASE')

    # Purchase
    purchase_vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_stages')
    purchase_paid = models.BooleanField(default=False)
    purchase_payment_deadline = models.DateField(null=True, blank=True)
    purchase_payment_date = models.DateField(null=True, blank=True)

    # Transport
    yard = models.ForeignKey(Yard, on_delete=models.SET_NULL, null=True, blank=True, related_name='shipping_stages')
    transport_vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='transport_stages')
    transport_arranged = models.BooleanField(default=False)
    yard_notified = models.BooleanField(default=False)
    photos_requested = models.BooleanField(default=False)

    # Repair
    repair_vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='repair_stages')
    repair_skipped = models.BooleanField(default=False)

    # Documents
    number_plates_received = models.BooleanField(default=False)
    deregistration_complete = models.BooleanField(default=False)
    export_certificate_uploaded = models.BooleanField(default=False)
    deregistration_sent_to_auction = models.BooleanField(default=False)
    insurance_refund_claimed = models.BooleanField(default=False)
    spare_keys_received = models.BooleanField(default=False)
    maintenance_records_received = models.BooleanField(default=False)
    manuals_received = models.BooleanField(default=False)

    # Booking
    booking_type = models.CharField(max_length=20, choices=BOOKING_TYPE_CHOICES, blank=True, null=True)
    booking_requested = models.BooleanField(default=False)
    booking_status = models.CharField(max_length=20, choices=BOOKING_STATUS_CHOICES, blank=True, null=True)
    booking_number = models.CharField(max_length=100, blank=True, null=True)
    pol = models.CharField(max_length=100, blank=True, null=True, help_text="Port of loading")
    pod = models.CharField(max_length=100, blank=True, null=True, help_text="Port of discharge")
    vessel_name = models.CharField(max_length=200, blank=True, null=True)
    voyage_no = models.CharField(max_length=100, blank=True, null=True)
    etd = models.DateField(null=True, blank=True)
    eta = models.DateField(null=True, blank=True)
    container_number = models.CharField(max_length=100, blank=True, null=True)
    container_size = models.CharField(max_length=20, blank=True, null=True)
    seal_number = models.CharField(max_length=100, blank=True, null=True)
    units_inside = models.PositiveIntegerField(null=True, blank=True)
    forwarding_vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='forwarding_stages')
    freight_vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='freight_stages')
    si_ec_sent_to_forwarder = models.BooleanField(default=False)
    shipping_order_received = models.BooleanField(default=False)

    # Shipped
    bl_copy_uploaded = models.BooleanField(default=False)
    bl_details_confirmed = models.BooleanField(default=False)
    bl_paid = models.BooleanField(default=False)
    lc_copy_uploaded = models.BooleanField(default=False)
    export_declaration_uploaded = models.BooleanField(default=False)
    recycle_applied = models.BooleanField(default=False)
    bl_release_notice = models.BooleanField(default=False)
    bl_released = models.BooleanField(default=False)

    # DHL
    dhl_tracking = models.CharField(max_length=100, blank=True, null=True)

    # Payment summary, kept in sync from invoices and transactions
    total_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_received = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    notes = models.TextField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.vehicle.vin} - {self.get_stage_display()}"

    class Meta:
        db_table = 'vehicle_shipping_stages'


class VehicleStageHistory(models.Model):
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='stage_history')
    previous_stage = models.CharField(max_length=20, choices=SHIPPING_STAGE_CHOICES, null=True, blank=True)
    new_stage = models.CharField(max_length=20, choices=SHIPPING_STAGE_CHOICES)
    action = models.CharField(max_length=255)
    notes = models.TextField(blank=True, null=True)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='stage_changes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_stage_history'
        ordering = ['-created_at']
        verbose_name_plural = 'vehicle stage history'


class VehicleStageCost(models.Model):
    """Cost incurred at a given shipping stage (auction fee, trucking, freight...)"""
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='stage_costs')
    stage = models.CharField(max_length=20, choices=SHIPPING_STAGE_CHOICES)
    cost_type = models.CharField(max_length=100)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='JPY')
    vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='stage_costs')
    payment_deadline = models.DateField(null=True, blank=True)
    payment_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_stage_costs'
        ordering = ['-created_at']


class VehicleDocument(models.Model):
    CATEGORY_CHOICES = [
        ('INVOICE', 'Invoice'),
        ('PHOTOS', 'Photos'),
        ('EXPORT_CERTIFICATE', 'Export Certificate'),
        ('DEREGISTRATION_CERTIFICATE', 'Deregistration Certificate'),
        ('INSURANCE_REFUND', 'Insurance Refund'),
        ('SHIPPING_INSTRUCTIONS', 'Shipping Instructions'),
        ('SHIPPING_ORDER', 'Shipping Order'),
        ('BILL_OF_LADING', 'Bill of Lading'),
        ('LETTER_OF_CREDIT', 'Letter of Credit'),
        ('EXPORT_DECLARATION', 'Export Declaration'),
        ('RECYCLE_APPLICATION', 'Recycle Application'),
        ('DHL_TRACKING', 'DHL Tracking'),
        ('RELEASED_BILL_OF_LADING', 'Released Bill of Lading'),
        ('AUCTION_SHEET', 'Auction Sheet'),
        ('OTHER', 'Other'),
    ]

    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='documents')
    category = models.CharField(max_length=40, choices=CATEGORY_CHOICES, default='OTHER')
    name = models.CharField(max_length=255)
    file_url = models.URLField(max_length=1000)
    stage = models.CharField(max_length=20, choices=SHIPPING_STAGE_CHOICES, null=True, blank=True)
    visible_to_customer = models.BooleanField(default=True)
    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='uploaded_documents')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'vehicle_documents'
        ordering = ['-created_at']
