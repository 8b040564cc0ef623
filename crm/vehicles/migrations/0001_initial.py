# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

SHIPPING_STAGE_CHOICES = [
    ('PURCHASE', 'Purchase'), ('TRANSPORT', 'Transport'), ('REPAIR', 'Repair'), ('DOCUMENTS', 'Documents'),
    ('BOOKING', 'Booking'), ('SHIPPED', 'Shipped'), ('DHL', 'Completed'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('parties', '0001_initial'),
        ('inquiries', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Yard',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('address', models.TextField(blank=True, null=True)),
                ('contact_person', models.CharField(blank=True, max_length=200, null=True)),
                ('phone', models.CharField(blank=True, max_length=40, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='yards', to='parties.vendor')),
            ],
            options={
                'db_table': 'yards',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Vehicle',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vin', models.CharField(max_length=64, unique=True)),
                ('make', models.CharField(blank=True, max_length=100, null=True)),
                ('model', models.CharField(blank=True, max_length=100, null=True)),
                ('year', models.PositiveIntegerField(blank=True, null=True)),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('current_shipping_stage', models.CharField(blank=True, choices=SHIPPING_STAGE_CHOICES, db_index=True, max_length=20, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_vehicles', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vehicles', to='parties.customer')),
                ('inquiry', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vehicles', to='inquiries.inquiry')),
            ],
            options={
                'db_table': 'vehicles',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='VehicleShippingStage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage', models.CharField(choices=SHIPPING_STAGE_CHOICES, default='PURCHASE', max_length=20)),
                ('purchase_paid', models.BooleanField(default=False)),
                ('purchase_payment_deadline', models.DateField(blank=True, null=True)),
                ('purchase_payment_date', models.DateField(blank=True, null=True)),
                ('transport_arranged', models.BooleanField(default=False)),
                ('yard_notified', models.BooleanField(default=False)),
                ('photos_requested', models.BooleanField(default=False)),
                ('repair_skipped', models.BooleanField(default=False)),
                ('number_plates_received', models.BooleanField(default=False)),
                ('deregistration_complete', models.BooleanField(default=False)),
                ('export_certificate_uploaded', models.BooleanField(default=False)),
                ('deregistration_sent_to_auction', models.BooleanField(default=False)),
                ('insurance_refund_claimed', models.BooleanField(default=False)),
                ('spare_keys_received', models.BooleanField(default=False)),
                ('maintenance_records_received', models.BooleanField(default=False)),
                ('manuals_received', models.BooleanField(default=False)),
                ('booking_type', models.CharField(blank=True, choices=[('RORO', 'RoRo'), ('CONTAINER', 'Container')], max_length=20, null=True)),
                ('booking_requested', models.BooleanField(default=False)),
                ('booking_status', models.CharField(blank=True, choices=[('PENDING', 'Pending'), ('CONFIRMED', 'Confirmed'), ('CANCELLED', 'Cancelled')], max_length=20, null=True)),
                ('booking_number', models.CharField(blank=True, max_length=100, null=True)),
                ('pol', models.CharField(blank=True, help_text='Port of loading', max_length=100, null=True)),
                ('pod', models.CharField(blank=True, help_text='Port of discharge', max_length=100, null=True)),
                ('vessel_name', models.CharField(blank=True, max_length=200, null=True)),
                ('voyage_no', models.CharField(blank=True, max_length=100, null=True)),
                ('etd', models.DateField(blank=True, null=True)),
                ('eta', models.DateField(blank=True, null=True)),
                ('container_number', models.CharField(blank=True, max_length=100, null=True)),
                ('container_size', models.CharField(blank=True, max_length=20, null=True)),
                ('seal_number', models.CharField(blank=True, max_length=100, null=True)),
                ('units_inside', models.PositiveIntegerField(blank=True, null=True)),
                ('si_ec_sent_to_forwarder', models.BooleanField(default=False)),
                ('shipping_order_received', models.BooleanField(default=False)),
                ('bl_copy_uploaded', models.BooleanField(default=False)),
                ('bl_details_confirmed', models.BooleanField(default=False)),
                ('bl_paid', models.BooleanField(default=False)),
                ('lc_copy_uploaded', models.BooleanField(default=False)),
                ('export_declaration_uploaded', models.BooleanField(default=False)),
                ('recycle_applied', models.BooleanField(default=False)),
                ('bl_release_notice', models.BooleanField(default=False)),
                ('bl_released', models.BooleanField(default=False)),
                ('dhl_tracking', models.CharField(blank=True, max_length=100, null=True)),
                ('total_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_received', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('notes', models.TextField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vehicle', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='shipping_stage', to='vehicles.vehicle')),
                ('purchase_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_stages', to='parties.vendor')),
                ('yard', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='shipping_stages', to='vehicles.yard')),
                ('transport_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transport_stages', to='parties.vendor')),
                ('repair_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='repair_stages', to='parties.vendor')),
                ('forwarding_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='forwarding_stages', to='parties.vendor')),
                ('freight_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='freight_stages', to='parties.vendor')),
            ],
            options={
                'db_table': 'vehicle_shipping_stages',
            },
        ),
        migrations.CreateModel(
            name='VehicleStageHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('previous_stage', models.CharField(blank=True, choices=SHIPPING_STAGE_CHOICES, max_length=20, null=True)),
                ('new_stage', models.CharField(choices=SHIPPING_STAGE_CHOICES, max_length=20)),
                ('action', models.CharField(max_length=255)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stage_history', to='vehicles.vehicle')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stage_changes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'vehicle_stage_history',
                'ordering': ['-created_at'],
                'verbose_name_plural': 'vehicle stage history',
            },
        ),
        migrations.CreateModel(
            name='VehicleStageCost',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage', models.CharField(choices=SHIPPING_STAGE_CHOICES, max_length=20)),
                ('cost_type', models.CharField(max_length=100)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='JPY', max_length=3)),
                ('payment_deadline', models.DateField(blank=True, null=True)),
                ('payment_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stage_costs', to='vehicles.vehicle')),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stage_costs', to='parties.vendor')),
            ],
            options={
                'db_table': 'vehicle_stage_costs',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='VehicleDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('INVOICE', 'Invoice'), ('PHOTOS', 'Photos'), ('EXPORT_CERTIFICATE', 'Export Certificate'), ('DEREGISTRATION_CERTIFICATE', 'Deregistration Certificate'), ('INSURANCE_REFUND', 'Insurance Refund'), ('SHIPPING_INSTRUCTIONS', 'Shipping Instructions'), ('SHIPPING_ORDER', 'Shipping Order'), ('BILL_OF_LADING', 'Bill of Lading'), ('LETTER_OF_CREDIT', 'Letter of Credit'), ('EXPORT_DECLARATION', 'Export Declaration'), ('RECYCLE_APPLICATION', 'Recycle Application'), ('DHL_TRACKING', 'DHL Tracking'), ('RELEASED_BILL_OF_LADING', 'Released Bill of Lading'), ('AUCTION_SHEET', 'Auction Sheet'), ('OTHER', 'Other')], default='OTHER', max_length=40)),
                ('name', models.CharField(max_length=255)),
                ('file_url', models.URLField(max_length=1000)),
                ('stage', models.CharField(blank=True, choices=SHIPPING_STAGE_CHOICES, max_length=20, null=True)),
                ('visible_to_customer', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='vehicles.vehicle')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'vehicle_documents',
                'ordering': ['-created_at'],
            },
        ),
    ]
