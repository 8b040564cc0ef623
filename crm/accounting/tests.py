"""
Tests for transactions, general costs and the merged transaction list
"""
from datetime import date
from decimal import Decimal
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User, AuditLog
from crm.accounting.models import Transaction, GeneralCost
from crm.invoicing.models import Invoice
from crm.vehicles.models import VehicleShippingStage


class TransactionAPITests(APITestCase):
    """Recording transactions keeps invoices and vehicles in sync"""

    def setUp(self):
        super().setUp()
        self.accountant = self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        self.admin = TestDataFactory.create_admin()
        self.invoice = TestDataFactory.create_invoice(self.admin, status=Invoice.STATUS_APPROVED)

    def _pay(self, amount, invoice=None, **extra):
        payload = {
            'direction': 'INCOMING',
            'type': 'BANK_TRANSFER',
            'amount': amount,
            'currency': 'jpy',
            'date': '2025-04-01',
            'invoice': (invoice or self.invoice).id,
        }
        payload.update(extra)
        return self.client.post('/api/v1/transactions/', payload, format='json')

    def test_payment_updates_invoice_status(self):
        response = self._pay('400000')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['currency'], 'JPY')
        self.assertEqual(response.data['customer'], self.invoice.customer_id)
        self.assertEqual(response.data['vehicle'], self.invoice.vehicle_id)
        self.assertEqual(response.data['invoice_number'], self.invoice.invoice_number)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PARTIALLY_PAID')

        self._pay('600000')
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PAID')
        stage = VehicleShippingStage.objects.get(vehicle_id=self.invoice.vehicle_id)
        self.assertEqual(stage.total_received, Decimal('1000000.00'))
        self.assertTrue(stage.purchase_paid)
        self.assertEqual(AuditLog.objects.filter(action='transaction_create').count(), 2)

    def test_amount_must_be_positive(self):
        response = self._pay('0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

    def test_moving_payment_resyncs_both_invoices(self):
        other = TestDataFactory.create_invoice(self.admin, status=Invoice.STATUS_APPROVED)
        tx_id = self._pay('1000000').data['id']
        response = self.client.patch(f'/api/v1/transactions/{tx_id}/', {'invoice': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.invoice.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PENDING')
        self.assertIsNone(self.invoice.paid_at)
        self.assertEqual(other.payment_status, 'PAID')
        self.assertTrue(AuditLog.objects.filter(action='transaction_update', object_id=str(tx_id)).exists())

    def test_delete_resyncs_invoice(self):
        tx_id = self._pay('1000000').data['id']
        response = self.client.delete(f'/api/v1/transactions/{tx_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PENDING')
        self.assertTrue(AuditLog.objects.filter(action='transaction_delete').exists())

    def test_vendor_payment_marks_stage_cost_paid(self):
        vehicle = TestDataFactory.create_vehicle()
        cost = TestDataFactory.create_stage_cost(vehicle, amount=Decimal('30000'))
        response = self.client.post('/api/v1/transactions/', {
            'direction': 'OUTGOING',
            'type': 'BANK_TRANSFER',
            'amount': '30000',
            'date': '2025-04-02',
            'vehicle_stage_cost': cost.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vehicle'], vehicle.id)
        cost.refresh_from_db()
        self.assertEqual(cost.payment_date, date(2025, 4, 2))

    def test_manager_can_view_but_not_record(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))
        self.assertEqual(self.client.get('/api/v1/transactions/').status_code, status.HTTP_200_OK)
        self.assertEqual(self._pay('1000').status_code, status.HTTP_403_FORBIDDEN)

    def test_sales_cannot_view(self):
        self.login(TestDataFactory.create_user())
        response = self.client.get('/api/v1/transactions/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TransactionListTests(APITestCase):
    """Transactions listed together with general and stage costs"""

    def setUp(self):
        super().setUp()
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        self.customer = TestDataFactory.create_customer()
        self.vehicle = TestDataFactory.create_vehicle(customer=self.customer)
        TestDataFactory.create_transaction(customer=self.customer, amount='500000', date=date(2025, 5, 10),
                                           description='Deposit')
        GeneralCost.objects.create(description='Office rent', amount=Decimal('150000'), date=date(2025, 5, 1))
        self.unpaid_cost = TestDataFactory.create_stage_cost(self.vehicle)
        self.settled_cost = TestDataFactory.create_stage_cost(self.vehicle, cost_type='Auction fee',
                                                              stage='PURCHASE')
        self.settled_cost.payment_date = date(2025, 5, 5)
        self.settled_cost.save()
        Transaction.objects.create(direction=Transaction.DIRECTION_OUTGOING, type='BANK_TRANSFER',
                                   amount=Decimal('30000'), date=date(2025, 5, 5), vehicle=self.vehicle,
                                   vehicle_stage_cost=self.settled_cost)

    def test_costs_are_merged(self):
        response = self.client.get('/api/v1/transactions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [row['id'] for row in response.data]
        self.assertIn(f'stage-cost-{self.unpaid_cost.id}', ids)
        self.assertNotIn(f'stage-cost-{self.settled_cost.id}', ids)
        self.assertEqual(len(ids), 4)
        general = next(row for row in response.data if row['source'] == 'general_cost')
        self.assertEqual(general['direction'], 'OUTGOING')
        self.assertEqual(general['amount'], '150000.00')

    def test_sorted_newest_first(self):
        response = self.client.get('/api/v1/transactions/', {'endDate': '2025-05-31'})
        dates = [row['date'] for row in response.data]
        self.assertEqual(dates, sorted(dates, reverse=True))
        self.assertEqual(dates[0], '2025-05-10')

    def test_incoming_only_skips_costs(self):
        response = self.client.get('/api/v1/transactions/', {'direction': 'INCOMING'})
        self.assertEqual([row['source'] for row in response.data], ['transaction'])

    def test_customer_filter_skips_costs(self):
        response = self.client.get('/api/v1/transactions/', {'customer': self.customer.id})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['description'], 'Deposit')

    def test_vehicle_filter_skips_general_costs(self):
        response = self.client.get('/api/v1/transactions/', {'vehicle': self.vehicle.id})
        sources = sorted(row['source'] for row in response.data)
        self.assertEqual(sources, ['transaction', 'vehicle_stage_cost'])

    def test_invalid_filter(self):
        response = self.client.get('/api/v1/transactions/', {'startDate': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class GeneralCostAPITests(APITestCase):
    """Overhead costs"""

    def setUp(self):
        super().setUp()
        self.accountant = self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))

    def test_create_and_filter(self):
        response = self.client.post('/api/v1/general-costs/', {
            'description': ' Accounting software ', 'amount': '12000', 'date': '2025-06-01', 'category': 'Software',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['description'], 'Accounting software')
        self.assertEqual(response.data['created_by']['id'], self.accountant.id)

        GeneralCost.objects.create(description='Rent', amount=Decimal('150000'), date=date(2025, 6, 1),
                                   category='Office')
        response = self.client.get('/api/v1/general-costs/', {'category': 'Software'})
        self.assertEqual([c['description'] for c in response.data], ['Accounting software'])

    def test_manager_cannot_create(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))
        response = self.client.post('/api/v1/general-costs/', {
            'description': 'Rent', 'amount': '150000', 'date': '2025-06-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
