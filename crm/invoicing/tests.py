"""
Tests for invoice arithmetic, numbering, the approval workflow, sharing,
payments, wallet application and cost invoices
"""
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User, AuditLog
from crm.accounting.models import Transaction
from crm.invoicing.models import ChargeType, CostInvoice, Invoice, InvoiceCharge, SharedInvoice, SharedInvoiceVehicle
from crm.invoicing.services import generate_invoice_number, recalc_invoice_payment_status, sync_vehicle_payment_summary
from crm.invoicing.totals import (
    charges_subtotal, invoice_total_with_tax, invoice_breakdown, derive_payment_status, profit_metrics,
    split_evenly,
)
from crm.vehicles.models import VehicleShippingStage


class InvoiceTotalsTests(TestCase):
    """Subtotal, tax and payment status arithmetic"""

    CHARGES = [
        {'charge_type': 'Vehicle', 'amount': '1000000'},
        {'charge_type': 'Freight', 'amount': '150000'},
        {'charge_type': 'Discount', 'amount': '50000'},
        {'charge_type': {'name': 'deposit'}, 'amount': '100000'},
    ]

    def test_discounts_and_deposits_are_subtracted(self):
        self.assertEqual(charges_subtotal(self.CHARGES), Decimal('1000000'))

    def test_tax_applies_to_subtotal(self):
        self.assertEqual(invoice_total_with_tax(self.CHARGES, True, Decimal('10')), Decimal('1100000'))
        self.assertEqual(invoice_total_with_tax(self.CHARGES, False, Decimal('10')), Decimal('1000000'))

    def test_breakdown_of_stored_invoice(self):
        admin = TestDataFactory.create_admin()
        invoice = TestDataFactory.create_invoice(
            admin, charges=[('Vehicle', '500000'), ('Discount', '20000')], tax_enabled=True, tax_rate=Decimal('8.00')
        )
        breakdown = invoice_breakdown(invoice)
        self.assertEqual(breakdown['subtotal'], Decimal('480000.00'))
        self.assertEqual(breakdown['discount_total'], Decimal('20000.00'))
        self.assertEqual(breakdown['deposit_total'], Decimal('0.00'))
        self.assertEqual(breakdown['tax_amount'], Decimal('38400.00'))
        self.assertEqual(breakdown['total'], Decimal('518400.00'))

    def test_payment_status_tolerance(self):
        self.assertEqual(derive_payment_status('999999.995', '1000000'), 'PAID')
        self.assertEqual(derive_payment_status('1200000', '1000000'), 'PAID')
        self.assertEqual(derive_payment_status('0.02', '1000000'), 'PARTIALLY_PAID')
        self.assertEqual(derive_payment_status('0.01', '1000000'), 'PENDING')
        self.assertEqual(derive_payment_status(None, '1000000'), 'PENDING')

    def test_profit_metrics(self):
        metrics = profit_metrics('1000000', '800000')
        self.assertEqual(metrics['profit'], Decimal('200000.00'))
        self.assertEqual(metrics['margin'], Decimal('20.00'))
        self.assertEqual(metrics['roi'], Decimal('25.00'))

    def test_profit_metrics_without_revenue_or_cost(self):
        metrics = profit_metrics(0, 0)
        self.assertEqual(metrics['margin'], Decimal('0.00'))
        self.assertEqual(metrics['roi'], Decimal('0.00'))

    def test_split_evenly(self):
        self.assertEqual(split_evenly('100000', 3),
                         [Decimal('33333.34'), Decimal('33333.33'), Decimal('33333.33')])
        self.assertEqual(sum(split_evenly('0.05', 2)), Decimal('0.05'))
        self.assertEqual(split_evenly('100', 0), [])


class InvoiceNumberTests(TestCase):
    """Yearly invoice number sequence"""

    def test_first_number_of_the_year(self):
        self.assertEqual(generate_invoice_number(2025), 'AUC-2025-001')

    def test_sequence_is_numeric_not_lexical(self):
        admin = TestDataFactory.create_admin()
        for number in ('AUC-2025-009', 'AUC-2025-010', 'AUC-2024-050'):
            invoice = TestDataFactory.create_invoice(admin)
            invoice.invoice_number = number
            invoice.save()
        self.assertEqual(generate_invoice_number(2025), 'AUC-2025-011')

    def test_sequence_continues_past_999(self):
        admin = TestDataFactory.create_admin()
        invoice = TestDataFactory.create_invoice(admin)
        invoice.invoice_number = 'AUC-2025-999'
        invoice.save()
        self.assertEqual(generate_invoice_number(2025), 'AUC-2025-1000')


class PaymentStatusSyncTests(TestCase):
    """Payment status follows incoming transactions"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.invoice = TestDataFactory.create_invoice(self.admin)

    def test_partial_then_full_payment(self):
        TestDataFactory.create_transaction(invoice=self.invoice, amount='400000')
        self.assertEqual(recalc_invoice_payment_status(self.invoice), 'PARTIALLY_PAID')
        self.assertIsNone(self.invoice.paid_at)

        TestDataFactory.create_transaction(invoice=self.invoice, amount='600000')
        self.assertEqual(recalc_invoice_payment_status(self.invoice), 'PAID')
        self.assertIsNotNone(self.invoice.paid_at)

    def test_outgoing_transactions_are_not_payments(self):
        TestDataFactory.create_transaction(invoice=self.invoice, amount='1000000',
                                           direction=Transaction.DIRECTION_OUTGOING)
        self.assertEqual(recalc_invoice_payment_status(self.invoice), 'PENDING')

    def test_recalc_command(self):
        TestDataFactory.create_transaction(invoice=self.invoice, amount='1000000')
        out = StringIO()
        call_command('recalc_payment_status', '--dry-run', stdout=out)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PENDING')
        self.assertIn('1 invoice(s) would change', out.getvalue())

        call_command('recalc_payment_status', '--invoice', self.invoice.invoice_number, stdout=StringIO())
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PAID')
        stage = VehicleShippingStage.objects.get(vehicle_id=self.invoice.vehicle_id)
        self.assertEqual(stage.total_received, Decimal('1000000.00'))


class InvoiceCreateAPITests(APITestCase):
    """Creating and listing invoices"""

    def setUp(self):
        super().setUp()
        self.customer = TestDataFactory.create_customer()
        self.vehicle = TestDataFactory.create_vehicle(customer=self.customer)

    def _payload(self, **extra):
        payload = {
            'customer': self.customer.id,
            'vehicle': self.vehicle.id,
            'charges': [
                {'charge_type_name': 'Vehicle', 'description': 'Toyota Hilux 2019', 'amount': '1500000'},
                {'charge_type_name': 'Freight', 'description': 'Yokohama to Mombasa', 'amount': '180000'},
            ],
        }
        payload.update(extra)
        return payload

    def test_sales_invoice_goes_to_approval(self):
        sales = self.login(TestDataFactory.create_user())
        response = self.client.post('/api/v1/invoices/', self._payload(status='APPROVED'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PENDING_APPROVAL')
        self.assertEqual(response.data['invoice_number'], f'AUC-{timezone.localdate().year}-001')
        self.assertEqual(response.data['totals']['total'], Decimal('1680000.00'))
        self.assertEqual(response.data['created_by']['id'], sales.id)
        self.assertTrue(ChargeType.objects.filter(name='Freight').exists())
        self.assertTrue(AuditLog.objects.filter(action='invoice_create').exists())

    def test_admin_invoice_defaults_to_draft(self):
        self.login(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/invoices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'DRAFT')

    def test_admin_may_choose_status(self):
        self.login(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/invoices/', self._payload(status='APPROVED'), format='json')
        self.assertEqual(response.data['status'], 'APPROVED')

    def test_numbers_increment(self):
        self.login(TestDataFactory.create_admin())
        self.client.post('/api/v1/invoices/', self._payload(), format='json')
        response = self.client.post('/api/v1/invoices/', self._payload(), format='json')
        self.assertEqual(response.data['invoice_number'], f'AUC-{timezone.localdate().year}-002')

    def test_at_least_one_charge_required(self):
        self.login(TestDataFactory.create_user())
        response = self.client.post('/api/v1/invoices/', self._payload(charges=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('charges', response.data)

    def test_charge_needs_description_and_positive_amount(self):
        self.login(TestDataFactory.create_user())
        response = self.client.post('/api/v1/invoices/', self._payload(charges=[
            {'charge_type_name': 'Vehicle', 'description': ' ', 'amount': '-5'},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_accountant_cannot_create(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        response = self.client.post('/api/v1/invoices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_is_paginated(self):
        admin = self.login(TestDataFactory.create_admin())
        for _ in range(3):
            TestDataFactory.create_invoice(admin, customer=self.customer, vehicle=self.vehicle)
        response = self.client.get('/api/v1/invoices/', {'limit': 2, 'page': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['invoices']), 1)
        self.assertEqual(response.data['pagination'], {'page': 2, 'limit': 2, 'total': 3, 'totalPages': 2})


class InvoiceVisibilityTests(APITestCase):
    """Who sees which invoices"""

    def setUp(self):
        super().setUp()
        self.admin = TestDataFactory.create_admin()
        self.sales = TestDataFactory.create_user()
        self.other_sales = TestDataFactory.create_user()
        self.admin_invoice = TestDataFactory.create_invoice(self.admin)
        self.sales_invoice = TestDataFactory.create_invoice(self.sales)

    def _numbers(self):
        response = self.client.get('/api/v1/invoices/')
        return {i['invoice_number'] for i in response.data['invoices']}

    def test_sales_sees_own_invoices(self):
        self.login(self.other_sales)
        self.assertEqual(self._numbers(), set())
        response = self.client.get(f'/api/v1/invoices/{self.sales_invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_manager_sees_sales_invoices(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))
        self.assertEqual(self._numbers(), {self.sales_invoice.invoice_number})

    def test_accountant_sees_everything(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        self.assertEqual(self._numbers(), {self.admin_invoice.invoice_number, self.sales_invoice.invoice_number})


class InvoiceWorkflowTests(APITestCase):
    """Draft, approval, finalization and unlocking"""

    def setUp(self):
        super().setUp()
        self.admin = TestDataFactory.create_admin()
        self.sales = self.login(TestDataFactory.create_user())
        self.invoice = TestDataFactory.create_invoice(self.sales)

    def _post(self, action):
        return self.client.post(f'/api/v1/invoices/{self.invoice.id}/{action}/')

    def test_full_workflow(self):
        response = self._post('submit')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'PENDING_APPROVAL')

        self.login(self.admin)
        response = self._post('approve')
        self.assertEqual(response.data['status'], 'APPROVED')
        self.assertEqual(response.data['approved_by']['id'], self.admin.id)
        self.assertTrue(response.data['wise_payment_link'])

        response = self._post('finalize')
        self.assertEqual(response.data['status'], 'FINALIZED')
        self.assertTrue(response.data['is_locked'])

        response = self._post('unlock')
        self.assertEqual(response.data['status'], 'APPROVED')
        self.assertFalse(response.data['is_locked'])

    def test_submit_requires_draft(self):
        self.invoice.status = Invoice.STATUS_APPROVED
        self.invoice.save()
        response = self._post('submit')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invoice must be in DRAFT status to submit for approval')

    def test_admin_cannot_submit(self):
        self.login(self.admin)
        response = self._post('submit')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_cannot_approve(self):
        self._post('submit')
        self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))
        response = self._post('approve')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approve_requires_pending(self):
        self.login(self.admin)
        response = self._post('approve')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invoice is not pending approval')

    def test_reject_returns_to_draft(self):
        self._post('submit')
        self.login(self.admin)
        response = self.client.patch(f'/api/v1/invoices/{self.invoice.id}/approve/',
                                     {'action': 'reject', 'reason': 'Wrong freight'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'DRAFT')
        log = AuditLog.objects.get(action='invoice_reject')
        self.assertEqual(log.changes, {'reason': 'Wrong freight'})

    def test_finalize_requires_approved(self):
        self.login(self.admin)
        response = self._post('finalize')
        self.assertEqual(response.data['error'], 'Invoice must be approved before finalization')

    def test_unlock_requires_locked(self):
        self.login(self.admin)
        response = self._post('unlock')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invoice is not locked')

    def test_staff_status_edit_goes_back_to_approval(self):
        response = self.client.patch(f'/api/v1/invoices/{self.invoice.id}/', {'status': 'APPROVED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'PENDING_APPROVAL')

    def test_finalized_invoice_is_read_only(self):
        self.invoice.status = Invoice.STATUS_FINALIZED
        self.invoice.is_locked = True
        self.invoice.save()
        self.login(self.admin)
        response = self.client.patch(f'/api/v1/invoices/{self.invoice.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_only_admin_deletes(self):
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.login(self.admin)
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class InvoiceChargeAPITests(APITestCase):
    """Charges on an editable invoice"""

    def setUp(self):
        super().setUp()
        self.sales = self.login(TestDataFactory.create_user())
        self.invoice = TestDataFactory.create_invoice(self.sales)

    def test_adding_charge_resyncs_payment_status(self):
        TestDataFactory.create_transaction(invoice=self.invoice, amount='1000000')
        recalc_invoice_payment_status(self.invoice)
        response = self.client.post(f'/api/v1/invoices/{self.invoice.id}/charges/', {
            'charge_type_name': 'Inspection', 'description': 'JEVIC inspection', 'amount': '25000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['charge_type_label'], 'Inspection')
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PARTIALLY_PAID')

    def test_last_charge_cannot_be_deleted(self):
        charge = self.invoice.charges.get()
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/charges/{charge.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(InvoiceCharge.objects.filter(pk=charge.pk).exists())


class InvoiceEditResyncTests(APITestCase):
    """Edits that change what is owed keep payments and vehicles in step"""

    def setUp(self):
        super().setUp()
        self.admin = self.login(TestDataFactory.create_admin())
        self.invoice = TestDataFactory.create_invoice(self.admin, status=Invoice.STATUS_APPROVED)
        TestDataFactory.create_transaction(invoice=self.invoice, vehicle=self.invoice.vehicle, amount='1000000')
        recalc_invoice_payment_status(self.invoice)
        sync_vehicle_payment_summary(self.invoice.vehicle_id)
        self.url = f'/api/v1/invoices/{self.invoice.id}/'

    def test_enabling_tax_reopens_paid_invoice(self):
        self.assertEqual(self.invoice.payment_status, 'PAID')
        response = self.client.patch(self.url, {'tax_enabled': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totals']['total'], Decimal('1100000.00'))
        self.assertEqual(response.data['payment_status'], 'PARTIALLY_PAID')
        self.assertIsNone(response.data['paid_at'])
        stage = VehicleShippingStage.objects.get(vehicle_id=self.invoice.vehicle_id)
        self.assertEqual(stage.total_charges, Decimal('1100000.00'))
        self.assertFalse(stage.purchase_paid)

    def test_tax_rate_change_updates_cost_sheet(self):
        self.client.get(f'/api/v1/invoices/{self.invoice.id}/cost/')
        self.invoice.tax_enabled = True
        self.invoice.save()
        self.client.patch(self.url, {'tax_rate': '8.00'}, format='json')
        cost_invoice = CostInvoice.objects.get(invoice=self.invoice)
        self.assertEqual(cost_invoice.total_revenue, Decimal('1080000.00'))

    def test_moving_to_another_vehicle(self):
        old_vehicle_id = self.invoice.vehicle_id
        new_vehicle = TestDataFactory.create_vehicle()
        response = self.client.patch(self.url, {'vehicle': new_vehicle.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        old_stage = VehicleShippingStage.objects.get(vehicle_id=old_vehicle_id)
        new_stage = VehicleShippingStage.objects.get(vehicle_id=new_vehicle.id)
        self.assertEqual(old_stage.total_charges, Decimal('0.00'))
        self.assertEqual(old_stage.total_received, Decimal('0.00'))
        self.assertEqual(new_stage.total_charges, Decimal('1000000.00'))
        self.assertTrue(new_stage.purchase_paid)

        new_vehicle.refresh_from_db()
        self.assertEqual(new_vehicle.customer_id, self.invoice.customer_id)
        self.assertEqual(Transaction.objects.get(invoice=self.invoice).vehicle_id, new_vehicle.id)

    def test_changing_customer_moves_vehicle_too(self):
        customer = TestDataFactory.create_customer()
        response = self.client.patch(self.url, {'customer': customer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.invoice.vehicle.refresh_from_db()
        self.assertEqual(self.invoice.vehicle.customer_id, customer.id)


class InvoiceShareTests(APITestCase):
    """Share links and the public invoice page"""

    def setUp(self):
        super().setUp()
        self.admin = self.login(TestDataFactory.create_admin())
        self.invoice = TestDataFactory.create_invoice(self.admin, status=Invoice.STATUS_APPROVED)

    def test_share_and_view(self):
        response = self.client.post(f'/api/v1/invoices/{self.invoice.id}/share/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = response.data['share_token']

        again = self.client.post(f'/api/v1/invoices/{self.invoice.id}/share/')
        self.assertEqual(again.data['share_token'], token)

        self.client.logout()
        response = self.client.get(f'/api/v1/public/invoices/{token}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoice_number'], self.invoice.invoice_number)
        self.assertEqual(response.data['totals']['total'], '1000000.00')
        self.assertNotIn('share_token', response.data)

    def test_draft_cannot_be_shared(self):
        draft = TestDataFactory.create_invoice(self.admin)
        response = self.client.post(f'/api/v1/invoices/{draft.id}/share/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_public_page_of_unapproved_invoice(self):
        draft = TestDataFactory.create_invoice(self.admin)
        draft.share_token = 'stale-token'
        draft.save()
        self.client.logout()
        response = self.client.get('/api/v1/public/invoices/stale-token/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Invoice not available')

    def test_unknown_token(self):
        response = self.client.get('/api/v1/public/invoices/nope/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_revoke(self):
        token = self.client.post(f'/api/v1/invoices/{self.invoice.id}/share/').data['share_token']
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/share/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.get(f'/api/v1/public/invoices/{token}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


@override_settings(WISE_WEBHOOK_SECRET='wise-secret')
class InvoicePaymentTests(APITestCase):
    """Manual and webhook driven payment status updates"""

    def setUp(self):
        super().setUp()
        self.admin = TestDataFactory.create_admin()
        self.invoice = TestDataFactory.create_invoice(self.admin, status=Invoice.STATUS_APPROVED)
        self.url = f'/api/v1/invoices/{self.invoice.id}/payment/'

    def test_webhook_with_secret(self):
        response = self.client.patch(self.url, {'webhookSecret': 'wise-secret', 'paymentStatus': 'PAID'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PAID')
        self.assertIsNotNone(self.invoice.paid_at)

    def test_webhook_with_wrong_secret(self):
        response = self.client.patch(self.url, {'webhookSecret': 'guess', 'paymentStatus': 'PAID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_without_secret(self):
        response = self.client.patch(self.url, {'paymentStatus': 'PAID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_sets_paid_at(self):
        self.login(self.admin)
        response = self.client.patch(self.url, {'paymentStatus': 'PAID', 'paidAt': '2025-03-01T10:00:00'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_at.date().isoformat(), '2025-03-01')

    def test_sales_cannot_set_payment_status(self):
        self.login(TestDataFactory.create_user())
        response = self.client.patch(self.url, {'paymentStatus': 'PAID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reopening_clears_paid_at(self):
        self.login(self.admin)
        self.client.patch(self.url, {'paymentStatus': 'PAID'}, format='json')
        response = self.client.patch(self.url, {'paymentStatus': 'PARTIALLY_PAID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.payment_status, 'PARTIALLY_PAID')
        self.assertIsNone(self.invoice.paid_at)

    def test_invalid_status(self):
        self.login(self.admin)
        response = self.client.patch(self.url, {'paymentStatus': 'REFUNDED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ApplyWalletTests(APITestCase):
    """Paying an invoice from the customer's deposits"""

    def setUp(self):
        super().setUp()
        self.accountant = self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        self.admin = TestDataFactory.create_admin()
        self.invoice = TestDataFactory.create_invoice(self.admin, status=Invoice.STATUS_APPROVED)
        TestDataFactory.create_transaction(customer=self.invoice.customer, amount='1200000', description='Deposit')
        self.url = f'/api/v1/invoices/{self.invoice.id}/apply-wallet/'

    def test_apply_full_amount(self):
        response = self.client.post(self.url, {'amount': '1000000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'PAID')
        self.assertEqual(response.data['wallet_balance'], Decimal('200000.00'))

        outgoing, incoming = Transaction.objects.filter(pk__in=response.data['transactions']).order_by('id')
        self.assertEqual(outgoing.direction, Transaction.DIRECTION_OUTGOING)
        self.assertIsNone(outgoing.invoice_id)
        self.assertEqual(incoming.invoice_id, self.invoice.id)
        self.assertEqual(incoming.description, f'Payment for Invoice {self.invoice.invoice_number}')
        self.assertTrue(AuditLog.objects.filter(action='wallet_apply').exists())

    def test_insufficient_balance(self):
        response = self.client.post(self.url, {'amount': '1300000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient wallet balance', response.data['error'])
        self.assertEqual(Transaction.objects.count(), 1)

    def test_invalid_amount(self):
        response = self.client.post(self.url, {'amount': 'lots'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sub_cent_amounts(self):
        response = self.client.post(self.url, {'amount': '0.001'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Transaction.objects.count(), 1)

        response = self.client.post(self.url, {'amount': '1000.005'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['wallet_balance'], Decimal('1198999.99'))

    def test_sales_cannot_apply(self):
        self.login(TestDataFactory.create_user())
        response = self.client.post(self.url, {'amount': '1000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CostInvoiceTests(APITestCase):
    """Internal profit sheet of an invoice"""

    def setUp(self):
        super().setUp()
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        self.invoice = TestDataFactory.create_invoice(TestDataFactory.create_admin())

    def test_items_drive_metrics(self):
        response = self.client.post(f'/api/v1/invoices/{self.invoice.id}/cost/items/', {
            'description': 'Auction hammer price', 'amount': '800000', 'category': 'Auction',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_revenue']), Decimal('1000000.00'))
        self.assertEqual(Decimal(response.data['profit']), Decimal('200000.00'))
        self.assertEqual(Decimal(response.data['margin']), Decimal('20.00'))
        self.assertEqual(Decimal(response.data['roi']), Decimal('25.00'))

        item_id = response.data['items'][0]['id']
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/cost/items/{item_id}/')
        self.assertEqual(Decimal(response.data['total_cost']), Decimal('0.00'))
        self.assertEqual(response.data['items'], [])

    def test_tiny_cost_against_large_revenue(self):
        invoice = TestDataFactory.create_invoice(TestDataFactory.create_admin(),
                                                 charges=[('Vehicle', Decimal('20000000.00'))])
        response = self.client.post(f'/api/v1/invoices/{invoice.id}/cost/items/', {
            'description': 'Bank fee', 'amount': '100',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['roi']), Decimal('19999900.00'))
        response = self.client.get(f'/api/v1/invoices/{invoice.id}/cost/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_get_creates_empty_sheet(self):
        response = self.client.get(f'/api/v1/invoices/{self.invoice.id}/cost/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['profit']), Decimal('1000000.00'))

    def test_sales_cannot_see_costs(self):
        self.login(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/invoices/{self.invoice.id}/cost/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SharedInvoiceTests(APITestCase):
    """Vendor invoices split across several vehicles"""

    def setUp(self):
        super().setUp()
        self.manager = self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))
        self.admin = TestDataFactory.create_admin()
        self.vendor = TestDataFactory.create_vendor(name='Osaka Forwarding', category='FORWARDER')
        self.vehicles = [TestDataFactory.create_vehicle() for _ in range(3)]
        self.invoice = TestDataFactory.create_invoice(self.admin, vehicle=self.vehicles[0])

    def _create(self, vehicles, total='90000', invoice_type='FORWARDER', **extra):
        payload = {
            'type': invoice_type,
            'vendor': self.vendor.id,
            'total_amount': total,
            'payment_deadline': '2025-07-31',
            'vehicle_ids': [v.id for v in vehicles],
        }
        payload.update(extra)
        return self.client.post('/api/v1/shared-invoices/', payload, format='json')

    def _shares(self, shared_invoice_id):
        return [
            a.allocated_amount for a in
            SharedInvoiceVehicle.objects.filter(shared_invoice_id=shared_invoice_id).order_by('vehicle_id')
        ]

    def _cost_of(self, invoice):
        return CostInvoice.objects.get(invoice=invoice).total_cost

    def test_create_splits_total_over_vehicles(self):
        response = self._create(self.vehicles, total='100000', invoice_type='forwarder',
                                cost_items=[{'description': 'Ocean freight', 'amount': '100000'}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        year = timezone.localdate().year
        self.assertEqual(response.data['invoice_number'], f'FORWARDER-{year}-001')
        self.assertEqual(response.data['vendor_detail']['name'], 'Osaka Forwarding')
        self.assertEqual(response.data['metadata']['costItems'],
                         [{'description': 'Ocean freight', 'amount': '100000.00'}])
        self.assertEqual(sum(self._shares(response.data['id'])), Decimal('100000.00'))
        self.assertEqual(Decimal(response.data['vehicles'][0]['allocated_amount']), Decimal('33333.34'))

        # The vehicle's share becomes a cost on its customer invoice
        self.assertEqual(self._cost_of(self.invoice), Decimal('33333.34'))
        self.assertTrue(AuditLog.objects.filter(action='shared_invoice_create').exists())

    def test_numbering_per_type(self):
        self._create(self.vehicles[:1])
        second = self._create(self.vehicles[:1])
        container = self._create(self.vehicles[:1], invoice_type='CONTAINER')
        year = timezone.localdate().year
        self.assertEqual(second.data['invoice_number'], f'FORWARDER-{year}-002')
        self.assertEqual(container.data['invoice_number'], f'CONTAINER-{year}-001')

    def test_validation(self):
        self.assertEqual(self._create([]).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._create(self.vehicles, total='0').status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/shared-invoices/', {
            'type': 'FORWARDER', 'vendor': self.vendor.id, 'total_amount': '1000',
            'payment_deadline': '2025-07-31', 'vehicle_ids': [999999],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vehicle_ids', response.data)
        self.assertEqual(SharedInvoice.objects.count(), 0)

    def test_cost_sheet_lists_shared_costs(self):
        shared_id = self._create(self.vehicles[:2]).data['id']
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        response = self.client.get(f'/api/v1/invoices/{self.invoice.id}/cost/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_cost']), Decimal('45000.00'))
        self.assertEqual(response.data['shared_costs'][0]['shared_invoice'], shared_id)
        self.assertEqual(Decimal(response.data['shared_costs'][0]['allocated_amount']), Decimal('45000.00'))

    def test_add_and_remove_vehicles(self):
        shared_id = self._create(self.vehicles[:2]).data['id']
        url = f'/api/v1/shared-invoices/{shared_id}/vehicles/'

        response = self.client.post(url, {'vehicleIds': [self.vehicles[2].id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._shares(shared_id), [Decimal('30000.00')] * 3)
        self.assertEqual(self._cost_of(self.invoice), Decimal('30000.00'))

        response = self.client.delete(f'{url}?vehicleId={self.vehicles[0].id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._shares(shared_id), [Decimal('45000.00')] * 2)
        self.assertEqual(self._cost_of(self.invoice), Decimal('0.00'))

        response = self.client.get(url)
        self.assertEqual([a['vehicle']['id'] for a in response.data], [v.id for v in self.vehicles[1:]])

    def test_vehicle_changes_rejected(self):
        shared_id = self._create(self.vehicles[:1]).data['id']
        url = f'/api/v1/shared-invoices/{shared_id}/vehicles/'
        response = self.client.delete(f'{url}?vehicleId={self.vehicles[0].id}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'{url}?vehicleId={self.vehicles[1].id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.post(url, {'vehicleIds': ['abc']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.login(TestDataFactory.create_user())
        response = self.client.post(url, {'vehicleIds': [self.vehicles[1].id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_changing_total_splits_again(self):
        shared_id = self._create(self.vehicles[:2]).data['id']
        response = self.client.patch(f'/api/v1/shared-invoices/{shared_id}/', {'total_amount': '50000'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._shares(shared_id), [Decimal('25000.00')] * 2)
        self.assertEqual(self._cost_of(self.invoice), Decimal('25000.00'))

    def test_only_admin_deletes(self):
        shared_id = self._create(self.vehicles[:2]).data['id']
        url = f'/api/v1/shared-invoices/{shared_id}/'
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.login(self.admin)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(SharedInvoiceVehicle.objects.exists())
        self.assertEqual(self._cost_of(self.invoice), Decimal('0.00'))

    def test_list_filtered_by_type(self):
        self._create(self.vehicles[:1])
        self._create(self.vehicles[:1], invoice_type='CONTAINER')
        response = self.client.get('/api/v1/shared-invoices/', {'type': 'container'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['shared_invoices'][0]['type'], 'CONTAINER')

    def test_vehicle_in_shared_invoice_cannot_be_deleted(self):
        self._create(self.vehicles[1:2])
        self.login(self.admin)
        response = self.client.delete(f'/api/v1/vehicles/{self.vehicles[1].id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
