"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from crm.parties.models import Customer, Vendor
from crm.inquiries.models import Inquiry
from crm.vehicles.models import Vehicle, VehicleShippingStage, VehicleStageCost
from crm.invoicing.models import ChargeType, Invoice, InvoiceCharge
from crm.accounting.models import Transaction
from decimal import Decimal
from django.utils import timezone
import random
import string
import uuid

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_SALES, is_staff=False, **extra):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            **extra
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMIN, is_staff=True, **kwargs)

    @staticmethod
    def create_customer(name=None, email=None, assigned_to=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Customer.objects.create(
            name=name,
            email=email,
            phone=f'+81{random.randint(100000000, 999999999)}',
            country='Kenya',
            assigned_to=assigned_to,
        )

    @staticmethod
    def create_vendor(name=None, category='AUCTION_HOUSE'):
        """Create a test vendor"""
        if not name:
            name = f'Vendor_{TestDataFactory.random_string(6)}'
        return Vendor.objects.create(name=name, category=category)

    @staticmethod
    def create_inquiry(customer_name=None, source='WEB', status=Inquiry.STATUS_NEW, assigned_to=None,
                       assigned_at=None, metadata=None):
        """Create a test inquiry"""
        if not customer_name:
            customer_name = f'Lead_{TestDataFactory.random_string(6)}'
        if assigned_to is not None and assigned_at is None:
            assigned_at = timezone.now()
        return Inquiry.objects.create(
            source=source,
            customer_name=customer_name,
            email=f'{customer_name.lower()}@test.com',
            status=status,
            assigned_to=assigned_to,
            assigned_at=assigned_at,
            metadata=metadata or {},
        )

    @staticmethod
    def create_vehicle(customer=None, vin=None, stage='PURCHASE', user=None):
        """Create a test vehicle with its shipping stage record"""
        if not vin:
            vin = f'VIN{uuid.uuid4().hex[:14].upper()}'
        vehicle = Vehicle.objects.create(
            vin=vin,
            make='Toyota',
            model='Land Cruiser',
            year=2018,
            customer=customer,
            current_shipping_stage=stage,
            created_by=user,
        )
        VehicleShippingStage.objects.create(vehicle=vehicle, stage=stage)
        return vehicle

    @staticmethod
    def create_stage_cost(vehicle, amount=None, vendor=None, stage='TRANSPORT', cost_type='Trucking'):
        if amount is None:
            amount = Decimal('30000.00')
        return VehicleStageCost.objects.create(
            vehicle=vehicle,
            stage=stage,
            cost_type=cost_type,
            amount=amount,
            vendor=vendor,
        )

    @staticmethod
    def create_charge_type(name):
        charge_type, _ = ChargeType.objects.get_or_create(name=name)
        return charge_type

    @staticmethod
    def create_invoice(user, customer=None, vehicle=None, status=Invoice.STATUS_DRAFT, charges=None,
                       tax_enabled=False, tax_rate=None):
        """
        Create a test invoice. ``charges`` is a list of (charge type name, amount)
        pairs; one 1,000,000 vehicle charge by default.
        """
        if not customer:
            customer = TestDataFactory.create_customer()
        if not vehicle:
            vehicle = TestDataFactory.create_vehicle(customer=customer)
        invoice_number = f"AUC-TEST-{str(uuid.uuid4())[:8].upper()}"
        invoice = Invoice.objects.create(
            invoice_number=invoice_number,
            customer=customer,
            vehicle=vehicle,
            created_by=user,
            status=status,
            issue_date=timezone.localdate(),
            tax_enabled=tax_enabled,
            tax_rate=tax_rate if tax_rate is not None else Decimal('10.00'),
            is_locked=status == Invoice.STATUS_FINALIZED,
        )
        for type_name, amount in (charges or [('Vehicle', Decimal('1000000.00'))]):
            InvoiceCharge.objects.create(
                invoice=invoice,
                charge_type=TestDataFactory.create_charge_type(type_name),
                description=type_name,
                amount=Decimal(str(amount)),
            )
        return invoice

    @staticmethod
    def create_transaction(direction=Transaction.DIRECTION_INCOMING, amount=None, customer=None, invoice=None,
                           description=None, currency='JPY', tx_type='BANK_TRANSFER', date=None, vehicle=None):
        """Create a test transaction"""
        if amount is None:
            amount = Decimal('100000.00')
        return Transaction.objects.create(
            direction=direction,
            type=tx_type,
            amount=Decimal(str(amount)),
            currency=currency,
            date=date or timezone.localdate(),
            description=description,
            customer=customer,
            invoice=invoice,
            vehicle=vehicle,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()


class APITestCase(TestCase):
    """TestCase starting every test with an empty cache and an unauthenticated client"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def login(self, user):
        self.client.authenticate_user(user)
        return user
