"""
Tests for customers, vendors, the wallet balance and the customer portal
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User, AuditLog
from crm.accounting.models import Transaction
from crm.accounting.wallet import compute_wallet_balance, get_customer_wallet_balance
from crm.invoicing.models import Invoice
from crm.parties.models import Customer
from crm.vehicles.models import VehicleDocument


class WalletBalanceTests(TestCase):
    """Wallet balance = JPY deposits minus JPY outgoing"""

    def test_compute_from_plain_rows(self):
        rows = [
            {'direction': 'INCOMING', 'amount': '500000', 'currency': 'JPY', 'description': 'Deposit'},
            {'direction': 'INCOMING', 'amount': '200000', 'currency': 'JPY', 'description': 'Payment for Invoice X'},
            {'direction': 'OUTGOING', 'amount': '150000', 'currency': 'JPY', 'description': 'Applied from wallet'},
            {'direction': 'INCOMING', 'amount': '1000', 'currency': 'USD', 'description': 'Deposit'},
            {'direction': 'OUTGOING', 'amount': '50', 'currency': 'USD', 'description': 'Refund'},
        ]
        self.assertEqual(compute_wallet_balance(rows), Decimal('350000.00'))

    def test_empty_wallet(self):
        self.assertEqual(compute_wallet_balance([]), Decimal('0.00'))

    def test_balance_from_database(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_transaction(customer=customer, amount='300000', description='Deposit')
        TestDataFactory.create_transaction(customer=customer, direction=Transaction.DIRECTION_OUTGOING,
                                           amount='100000', description='Refund')
        other = TestDataFactory.create_customer()
        TestDataFactory.create_transaction(customer=other, amount='999999', description='Deposit')
        self.assertEqual(get_customer_wallet_balance(customer), Decimal('200000.00'))


class CustomerAPITests(APITestCase):
    """Customer endpoints"""

    def setUp(self):
        super().setUp()
        self.manager = self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))

    def test_create_customer(self):
        response = self.client.post('/api/v1/customers/', {'name': '  Jane Mwangi ', 'country': 'Kenya'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Jane Mwangi')
        self.assertFalse(response.data['has_share_token'])

    def test_search_customers(self):
        TestDataFactory.create_customer(name='Otieno Motors')
        TestDataFactory.create_customer(name='Kamau Imports')
        response = self.client.get('/api/v1/customers/', {'search': 'otieno'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Otieno Motors'])

    def test_filter_by_assigned_user(self):
        sales = TestDataFactory.create_user()
        TestDataFactory.create_customer(name='Wanjiru Traders', assigned_to=sales)
        TestDataFactory.create_customer(name='Kamau Imports')
        response = self.client.get('/api/v1/customers/', {'assignedTo': sales.id})
        self.assertEqual([c['name'] for c in response.data], ['Wanjiru Traders'])
        response = self.client.get('/api/v1/customers/', {'assignedTo': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_admin_can_delete(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_with_invoices_cannot_be_deleted(self):
        admin = self.login(TestDataFactory.create_admin())
        invoice = TestDataFactory.create_invoice(admin)
        response = self.client.delete(f'/api/v1/customers/{invoice.customer_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Customer.objects.filter(pk=invoice.customer_id).exists())

    def test_generate_and_revoke_share_token(self):
        customer = TestDataFactory.create_customer()
        response = self.client.post(f'/api/v1/customers/{customer.id}/share-token/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = response.data['share_token']
        self.assertEqual(len(token), 64)
        self.assertTrue(response.data['portal_url'].endswith(token))
        self.assertTrue(AuditLog.objects.filter(action='share_token_generate').exists())

        response = self.client.delete(f'/api/v1/customers/{customer.id}/share-token/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        customer.refresh_from_db()
        self.assertIsNone(customer.share_token)

    def test_sales_cannot_generate_share_token(self):
        self.login(TestDataFactory.create_user())
        customer = TestDataFactory.create_customer()
        response = self.client.post(f'/api/v1/customers/{customer.id}/share-token/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_wallet_balance_endpoint(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_transaction(customer=customer, amount='250000', description='Deposit')
        response = self.client.get(f'/api/v1/customers/{customer.id}/wallet-balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['balance'])), Decimal('250000.00'))
        self.assertEqual(response.data['currency'], 'JPY')


class CustomerPortalTests(APITestCase):
    """Public, token based customer portal"""

    def setUp(self):
        super().setUp()
        self.admin = TestDataFactory.create_admin()
        self.customer = TestDataFactory.create_customer()
        self.customer.share_token = Customer.generate_share_token()
        self.customer.save()

    def test_unknown_token_is_404(self):
        response = self.client.get('/api/v1/public/customers/does-not-exist/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_portal_shows_vehicles_finalized_invoices_and_visible_documents(self):
        vehicle = TestDataFactory.create_vehicle(customer=self.customer, stage='BOOKING')
        VehicleDocument.objects.create(vehicle=vehicle, name='Export certificate', category='EXPORT_CERTIFICATE',
                                       file_url='https://files.test/ec.pdf')
        VehicleDocument.objects.create(vehicle=vehicle, name='Auction sheet', category='AUCTION_SHEET',
                                       file_url='https://files.test/as.pdf', visible_to_customer=False)
        TestDataFactory.create_invoice(self.admin, customer=self.customer, vehicle=vehicle,
                                       status=Invoice.STATUS_FINALIZED)
        TestDataFactory.create_invoice(self.admin, customer=self.customer, vehicle=vehicle,
                                       status=Invoice.STATUS_DRAFT)
        TestDataFactory.create_transaction(customer=self.customer, amount='50000', description='Deposit')

        response = self.client.get(f'/api/v1/public/customers/{self.customer.share_token}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['customer']['name'], self.customer.name)
        self.assertEqual(len(response.data['vehicles']), 1)
        entry = response.data['vehicles'][0]
        self.assertEqual(entry['stage'], 'BOOKING')
        self.assertEqual(entry['progress'], 71)
        self.assertEqual([d['name'] for d in entry['documents']], ['Export certificate'])
        self.assertEqual(len(response.data['invoices']), 1)
        self.assertEqual(Decimal(str(response.data['wallet']['balance'])), Decimal('50000.00'))


class VendorAPITests(APITestCase):
    """Vendor endpoints"""

    def setUp(self):
        super().setUp()
        self.login(TestDataFactory.create_user(role=User.ROLE_BACK_OFFICE))

    def test_filter_by_category(self):
        TestDataFactory.create_vendor(name='USS Tokyo', category='AUCTION_HOUSE')
        TestDataFactory.create_vendor(name='Zen Trucking', category='TRANSPORT_VENDOR')
        response = self.client.get('/api/v1/vendors/', {'category': 'TRANSPORT_VENDOR'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['name'] for v in response.data], ['Zen Trucking'])

    def test_non_admin_cannot_delete_vendor(self):
        vendor = TestDataFactory.create_vendor()
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
