"""
Tests for inquiries: assignment rules, failed leads, kanban board, n8n webhook
and the release of stale assignments
"""
from datetime import timedelta
from io import StringIO
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User
from crm.inquiries.kanban import build_board, ensure_default_stages, DEFAULT_STAGES
from crm.inquiries.models import Inquiry, InquiryHistory, KanbanStage
from crm.inquiries.services import (
    normalize_source, build_looking_for, assign_inquiry, change_inquiry_status, release_expired_assignments,
)


class WebhookNormalizationTests(TestCase):
    """Source names and looking-for summaries from web forms"""

    def test_normalize_source(self):
        self.assertEqual(normalize_source('Contact Us'), 'CONTACT_US_INQUIRY_FORM')
        self.assertEqual(normalize_source('JCT Stock Inquiry'), 'JCT_STOCK_INQUIRY')
        self.assertEqual(normalize_source('chat'), 'CHATBOT')
        self.assertEqual(normalize_source('something else'), 'INQUIRY_FORM')

    def test_looking_for_from_vehicle_list(self):
        payload = {'vehicles': [{'make': 'Toyota', 'model': 'Hilux', 'yearRange': '2015-2018'},
                                {'make': 'Nissan', 'model': 'X-Trail'}]}
        self.assertEqual(build_looking_for(payload), 'Toyota Hilux (2015-2018), Nissan X-Trail')

    def test_looking_for_from_stock_inquiry(self):
        self.assertEqual(build_looking_for({'vehicle': 'Mazda CX-5', 'price': '1,200,000'}),
                         'Mazda CX-5 - 1,200,000')

    def test_looking_for_from_hero_form(self):
        payload = {'make': 'Subaru', 'model': 'Forester', 'yearRange': '2016+', 'budget': '8000 USD'}
        self.assertEqual(build_looking_for(payload), 'Subaru Forester (2016+) - Budget: 8000 USD')


class AssignmentServiceTests(TestCase):
    """Attempt counting and failed lead detection"""

    def setUp(self):
        self.first = TestDataFactory.create_user(first_name='Amina', last_name='Odhiambo')
        self.second = TestDataFactory.create_user()

    def test_reassignment_records_previous_holder(self):
        inquiry = TestDataFactory.create_inquiry()
        assign_inquiry(inquiry, self.first)
        assign_inquiry(inquiry, self.second)
        inquiry.refresh_from_db()
        self.assertEqual(inquiry.attempt_count, 2)
        self.assertEqual(inquiry.metadata['previouslyTriedBy']['userId'], self.first.id)
        history = InquiryHistory.objects.filter(inquiry=inquiry, action='ASSIGNED').order_by('-id').first()
        self.assertEqual(history.notes, 'Previously tried by Amina Odhiambo')

    def test_status_change_after_two_attempts_flags_failed_lead(self):
        inquiry = TestDataFactory.create_inquiry(metadata={'attemptCount': 2}, assigned_to=self.second)
        change_inquiry_status(inquiry, Inquiry.STATUS_CONTACTED, self.second)
        inquiry.refresh_from_db()
        self.assertTrue(inquiry.is_failed_lead)
        history = InquiryHistory.objects.get(inquiry=inquiry, action='STATUS_CHANGED')
        self.assertEqual(history.notes, 'Marked as failed lead after second attempt')

    def test_winning_never_flags_failed_lead(self):
        inquiry = TestDataFactory.create_inquiry(metadata={'attemptCount': 3}, assigned_to=self.second)
        change_inquiry_status(inquiry, Inquiry.STATUS_CLOSED_WON, self.second)
        inquiry.refresh_from_db()
        self.assertFalse(inquiry.is_failed_lead)
        self.assertIsNone(InquiryHistory.objects.get(inquiry=inquiry, action='STATUS_CHANGED').notes)


class ReleaseExpiredAssignmentsTests(TestCase):
    """Stale assignments go back to the pool"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        old = timezone.now() - timedelta(days=45)
        self.stale = TestDataFactory.create_inquiry(assigned_to=self.user, assigned_at=old)
        self.won = TestDataFactory.create_inquiry(assigned_to=self.user, assigned_at=old,
                                                  status=Inquiry.STATUS_CLOSED_WON)
        self.fresh = TestDataFactory.create_inquiry(assigned_to=self.user)

    def test_release(self):
        released = release_expired_assignments(days=30)
        self.assertEqual(released, 1)
        self.stale.refresh_from_db()
        self.won.refresh_from_db()
        self.fresh.refresh_from_db()
        self.assertIsNone(self.stale.assigned_to)
        self.assertEqual(self.won.assigned_to, self.user)
        self.assertEqual(self.fresh.assigned_to, self.user)
        history = InquiryHistory.objects.get(inquiry=self.stale, action='AUTO_RELEASED')
        self.assertEqual(history.notes, 'Automatically released after 30 days without conversion')

    def test_dry_run_changes_nothing(self):
        self.assertEqual(release_expired_assignments(days=30, dry_run=True), 1)
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.assigned_to, self.user)

    def test_management_command(self):
        out = StringIO()
        call_command('release_expired_assignments', '--days', '30', stdout=out)
        self.assertIn('Released 1 inquiries', out.getvalue())

    @override_settings(CRON_SECRET='cron-secret')
    def test_cron_endpoint_requires_secret(self):
        response = self.client.post('/api/v1/cron/release-assignments/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        response = self.client.post('/api/v1/cron/release-assignments/',
                                    HTTP_AUTHORIZATION='Bearer cron-secret')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['released'], 1)


class KanbanBoardTests(TestCase):
    """Board construction"""

    def test_default_stages_created_once(self):
        self.assertEqual(ensure_default_stages(), len(DEFAULT_STAGES))
        self.assertEqual(ensure_default_stages(), 0)
        self.assertEqual(KanbanStage.objects.count(), 7)

    def test_board_shows_only_assigned_inquiries(self):
        user = TestDataFactory.create_user()
        assigned = TestDataFactory.create_inquiry(assigned_to=user)
        TestDataFactory.create_inquiry()
        board = build_board()
        new_column = next(column for column in board if column['status'] == Inquiry.STATUS_NEW)
        self.assertEqual([i['id'] for i in new_column['inquiries']], [assigned.id])


class InquiryAPITests(APITestCase):
    """Inquiry endpoints"""

    def setUp(self):
        super().setUp()
        self.sales = self.login(TestDataFactory.create_user())
        self.other_sales = TestDataFactory.create_user()
        self.manager = TestDataFactory.create_user(role=User.ROLE_MANAGER)

    def test_sales_sees_own_and_unassigned(self):
        own = TestDataFactory.create_inquiry(assigned_to=self.sales)
        unassigned = TestDataFactory.create_inquiry()
        TestDataFactory.create_inquiry(assigned_to=self.other_sales)
        stale = TestDataFactory.create_inquiry(assigned_to=self.other_sales,
                                               assigned_at=timezone.now() - timedelta(days=40))
        response = self.client.get('/api/v1/inquiries/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({i['id'] for i in response.data}, {own.id, unassigned.id, stale.id})

    def test_failed_leads_are_hidden_from_list(self):
        TestDataFactory.create_inquiry(metadata={'isFailedLead': True})
        visible = TestDataFactory.create_inquiry()
        response = self.client.get('/api/v1/inquiries/')
        self.assertEqual([i['id'] for i in response.data], [visible.id])

    def test_assign_unassigned_inquiry(self):
        inquiry = TestDataFactory.create_inquiry()
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/assign/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        inquiry.refresh_from_db()
        self.assertEqual(inquiry.assigned_to, self.sales)

    def test_cannot_take_inquiry_from_colleague(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.other_sales)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/assign/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_manager_can_reassign(self):
        self.login(self.manager)
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.other_sales)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/assign/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_convert_requires_flag(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.sales)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/convert/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/convert/', {'converted': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Inquiry.STATUS_CLOSED_WON)

    def test_to_failed_lead_and_manager_listing(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.sales)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/to-failed-lead/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        inquiry.refresh_from_db()
        self.assertTrue(inquiry.is_failed_lead)
        self.assertIsNone(inquiry.assigned_to)

        response = self.client.get('/api/v1/inquiries/failed-leads/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.login(self.manager)
        response = self.client.get('/api/v1/inquiries/failed-leads/')
        self.assertEqual([i['id'] for i in response.data], [inquiry.id])

    def test_copy_creates_fresh_lead(self):
        inquiry = TestDataFactory.create_inquiry(
            status=Inquiry.STATUS_QUALIFIED, assigned_to=self.sales,
            metadata={'notes': 'Prefers diesel', 'country': 'Kenya', 'attemptCount': 2, 'isFailedLead': True},
        )
        inquiry.source_id = 'form-123'
        inquiry.save()
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/copy/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotEqual(response.data['id'], inquiry.id)
        self.assertEqual(response.data['status'], Inquiry.STATUS_NEW)
        self.assertEqual(response.data['customer_name'], inquiry.customer_name)
        self.assertIsNone(response.data['assigned_to'])
        self.assertIsNone(response.data['source_id'])
        self.assertEqual(response.data['metadata'], {'country': 'Kenya'})
        history = InquiryHistory.objects.get(inquiry_id=response.data['id'])
        self.assertEqual(history.action, 'COPIED')
        self.assertEqual(history.notes, f'Copied from inquiry {inquiry.id}')

    def test_copy_of_colleague_inquiry_forbidden(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.other_sales)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/copy/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.login(self.manager)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/copy/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_add_note(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.sales)
        response = self.client.post(f'/api/v1/inquiries/{inquiry.id}/notes/', {'content': 'Called, no answer'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(InquiryHistory.objects.filter(inquiry=inquiry, action='NOTE_ADDED').exists())

    def test_kanban_move(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.sales)
        response = self.client.patch('/api/v1/kanban/', {'inquiryId': inquiry.id, 'newStatus': 'QUALIFIED'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/kanban/')
        self.assertEqual(response.data['viewMode'], 'me')
        qualified = next(c for c in response.data['stages'] if c['status'] == 'QUALIFIED')
        self.assertEqual([i['id'] for i in qualified['inquiries']], [inquiry.id])

    def test_kanban_move_rejects_invalid_status(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.sales)
        response = self.client.patch('/api/v1/kanban/', {'inquiryId': inquiry.id, 'newStatus': 'WON'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_kanban_move_of_colleague_inquiry_forbidden(self):
        inquiry = TestDataFactory.create_inquiry(assigned_to=self.other_sales)
        response = self.client.patch('/api/v1/kanban/', {'inquiryId': inquiry.id, 'newStatus': 'QUALIFIED'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_kanban_move_of_malformed_id(self):
        response = self.client.patch('/api/v1/kanban/', {'inquiryId': 'abc', 'newStatus': 'QUALIFIED'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_rejects_malformed_assigned_to(self):
        self.login(self.manager)
        response = self.client.get('/api/v1/inquiries/', {'assignedTo': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/inquiries/', {'assignedTo': self.other_sales.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class N8nWebhookTests(APITestCase):
    """Inquiries created by the n8n workflow"""

    def test_missing_source(self):
        response = self.client.post('/api/v1/webhooks/n8n/', {'name': 'Juma'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['receivedFields'], ['name'])

    def test_creates_inquiry_with_metadata(self):
        payload = {
            'source': 'Hero Inquiry',
            'name': 'Juma Hassan',
            'email': 'juma@example.com',
            'make': 'Toyota',
            'model': 'Prado',
            'budget': '15000 USD',
            'country': 'Tanzania',
        }
        response = self.client.post('/api/v1/webhooks/n8n/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        inquiry = Inquiry.objects.get(pk=response.data['inquiry']['id'])
        self.assertEqual(inquiry.source, 'HERO_INQUIRY')
        self.assertEqual(inquiry.looking_for, 'Toyota Prado - Budget: 15000 USD')
        self.assertEqual(inquiry.metadata['country'], 'Tanzania')
        self.assertTrue(inquiry.source_id.startswith('contactus-juma@example.com-'))
        self.assertTrue(InquiryHistory.objects.filter(inquiry=inquiry, action='CREATED').exists())

    def test_duplicate_source_id_conflicts(self):
        payload = {'source': 'WhatsApp', 'sourceId': 'wa-123', 'name': 'Juma'}
        self.assertEqual(self.client.post('/api/v1/webhooks/n8n/', payload, format='json').status_code,
                         status.HTTP_201_CREATED)
        response = self.client.post('/api/v1/webhooks/n8n/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    @override_settings(N8N_WEBHOOK_SECRET='hook-secret')
    def test_secret_enforced_when_configured(self):
        payload = {'source': 'Email', 'name': 'Juma'}
        response = self.client.post('/api/v1/webhooks/n8n/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        response = self.client.post('/api/v1/webhooks/n8n/', payload, format='json',
                                    HTTP_X_WEBHOOK_SECRET='hook-secret')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
