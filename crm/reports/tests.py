"""
Tests for inquiry and transaction statistics
"""
from datetime import date, datetime
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User
from crm.accounting.models import Transaction
from crm.inquiries.models import Inquiry
from crm.reports.views import inquiry_stats, transaction_stats


class InquiryStatsTests(TestCase):
    """Won, lost and other buckets per source"""

    def setUp(self):
        TestDataFactory.create_inquiry(source='WEB', status=Inquiry.STATUS_CLOSED_WON)
        TestDataFactory.create_inquiry(source='WEB', status=Inquiry.STATUS_CLOSED_LOST)
        TestDataFactory.create_inquiry(source='WEB', status=Inquiry.STATUS_CONTACTED)
        TestDataFactory.create_inquiry(source='WHATSAPP', status=Inquiry.STATUS_CLOSED_WON)

    def test_buckets(self):
        stats = inquiry_stats()
        self.assertEqual(stats['totals'], {'total': 4, 'won': 2, 'lost': 1, 'other': 1})
        self.assertEqual(stats['by_source'], [
            {'source': 'WEB', 'total': 3, 'won': 1, 'lost': 1, 'other': 1},
            {'source': 'WHATSAPP', 'total': 1, 'won': 1, 'lost': 0, 'other': 0},
        ])

    def test_date_range(self):
        old = timezone.make_aware(datetime(2024, 1, 15, 12, 0))
        Inquiry.objects.filter(source='WHATSAPP').update(created_at=old)
        stats = inquiry_stats(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
        self.assertEqual(stats['totals']['total'], 1)
        self.assertEqual(stats['by_source'][0]['source'], 'WHATSAPP')


class TransactionStatsTests(TestCase):
    """Incoming, outgoing and net amounts"""

    def setUp(self):
        TestDataFactory.create_transaction(amount='500000', date=date(2025, 1, 10))
        TestDataFactory.create_transaction(amount='200000', date=date(2025, 2, 3), tx_type='WISE')
        TestDataFactory.create_transaction(direction=Transaction.DIRECTION_OUTGOING, amount='150000',
                                           date=date(2025, 2, 20))
        TestDataFactory.create_transaction(amount='9999', currency='USD', date=date(2025, 2, 20))

    def test_totals_in_currency(self):
        stats = transaction_stats()
        self.assertEqual(stats['currency'], 'JPY')
        self.assertEqual(Decimal(stats['incoming']), Decimal('700000'))
        self.assertEqual(Decimal(stats['outgoing']), Decimal('150000'))
        self.assertEqual(Decimal(stats['net']), Decimal('550000'))

    def test_by_month_and_type(self):
        stats = transaction_stats()
        self.assertEqual([m['month'] for m in stats['by_month']], ['2025-01', '2025-02'])
        february = stats['by_month'][1]
        self.assertEqual(Decimal(february['net']), Decimal('50000'))

        by_type = {entry['type']: entry for entry in stats['by_type']}
        self.assertEqual(by_type['BANK_TRANSFER']['count'], 2)
        self.assertEqual(Decimal(by_type['WISE']['incoming']), Decimal('200000'))

    def test_other_currency(self):
        stats = transaction_stats(currency='USD')
        self.assertEqual(Decimal(stats['incoming']), Decimal('9999'))
        self.assertEqual(stats['by_month'][0]['month'], '2025-02')


class StatsAPITests(APITestCase):
    """Stats endpoints"""

    def test_inquiry_stats_for_back_office(self):
        TestDataFactory.create_inquiry(source='EMAIL')
        self.login(TestDataFactory.create_user(role=User.ROLE_BACK_OFFICE))
        response = self.client.get('/api/v1/stats/inquiries/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totals']['total'], 1)

    def test_inquiry_stats_forbidden_for_sales(self):
        self.login(TestDataFactory.create_user())
        response = self.client.get('/api/v1/stats/inquiries/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_date(self):
        self.login(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/stats/inquiries/', {'startDate': '2025-13-40'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reversed_range(self):
        self.login(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/stats/transactions/',
                                   {'startDate': '2025-03-01', 'endDate': '2025-01-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'startDate must be before endDate')

    def test_transaction_stats_for_accountant(self):
        TestDataFactory.create_transaction(amount='120000', date=date(2025, 3, 1))
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        response = self.client.get('/api/v1/stats/transactions/', {'currency': 'jpy'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['currency'], 'JPY')
        self.assertEqual(Decimal(response.data['incoming']), Decimal('120000'))

    def test_transaction_stats_forbidden_for_back_office(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_BACK_OFFICE))
        response = self.client.get('/api/v1/stats/transactions/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
