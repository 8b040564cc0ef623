"""
Tests for users, roles, permissions and audit logging
"""
from django.test import TestCase, RequestFactory
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User, AuditLog
from crm.core.permissions import (
    get_user_role, can_edit_invoice, can_view_transactions, can_manage_transactions,
    can_manage_vehicle_stages, can_view_inquiry_stats, SALES, MANAGER, ADMIN, BACK_OFFICE, ACCOUNTANT,
)
from crm.core.utils import create_audit_log, get_client_ip, parse_bool


class PermissionHelperTests(TestCase):
    """Role capability helpers"""

    def test_superuser_is_admin(self):
        """A superuser left on the default role counts as ADMIN"""
        user = User.objects.create_superuser(username='root', email='root@test.com', password='x')
        self.assertEqual(get_user_role(user), ADMIN)

    def test_default_role_is_sales(self):
        user = TestDataFactory.create_user()
        self.assertEqual(get_user_role(user), SALES)

    def test_edit_invoice_rules(self):
        """Locked or finalized invoices are read-only, approved ones admin-only"""
        self.assertTrue(can_edit_invoice('DRAFT', SALES))
        self.assertTrue(can_edit_invoice('PENDING_APPROVAL', MANAGER))
        self.assertFalse(can_edit_invoice('APPROVED', MANAGER))
        self.assertTrue(can_edit_invoice('APPROVED', ADMIN))
        self.assertFalse(can_edit_invoice('FINALIZED', ADMIN))
        self.assertFalse(can_edit_invoice('APPROVED', ADMIN, is_locked=True))
        self.assertFalse(can_edit_invoice('DRAFT', ACCOUNTANT))

    def test_transaction_roles(self):
        self.assertTrue(can_view_transactions(MANAGER))
        self.assertFalse(can_manage_transactions(MANAGER))
        self.assertTrue(can_manage_transactions(ACCOUNTANT))
        self.assertFalse(can_view_transactions(SALES))

    def test_stage_and_stats_roles(self):
        self.assertTrue(can_manage_vehicle_stages(BACK_OFFICE))
        self.assertFalse(can_manage_vehicle_stages(SALES))
        self.assertTrue(can_view_inquiry_stats(BACK_OFFICE))
        self.assertFalse(can_view_inquiry_stats(ACCOUNTANT))


class UtilsTests(TestCase):
    """Request helpers and audit logging"""

    def test_client_ip_prefers_forwarded_for(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.5')

    def test_parse_bool(self):
        self.assertTrue(parse_bool('true'))
        self.assertTrue(parse_bool('1'))
        self.assertFalse(parse_bool('no'))
        self.assertTrue(parse_bool(None, default=True))

    def test_audit_log_skips_missing_fields(self):
        """Missing action or object id never raises"""
        self.assertIsNone(create_audit_log(action='update', model_name='Invoice'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_log_with_user_override(self):
        user = TestDataFactory.create_user()
        log = create_audit_log(action='update', model_name='Customer', object_id=1, user=user,
                               changes={'name': 'x'})
        self.assertEqual(log.user, user)
        self.assertEqual(log.object_id, '1')


class AuthAPITests(APITestCase):
    """Authentication endpoints and error payloads"""

    def test_login_returns_tokens_and_user(self):
        TestDataFactory.create_user(username='alice', password='s3cret-pass', role=User.ROLE_MANAGER)
        response = self.client.post('/api/v1/auth/login/', {'username': 'alice', 'password': 's3cret-pass'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_MANAGER)

    def test_unauthenticated_request_is_401_with_error(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_me_includes_capabilities(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['permissions']['can_manage_transactions'])
        self.assertFalse(response.data['permissions']['can_create_invoice'])


class UserAPITests(APITestCase):
    """User management (admin only)"""

    def setUp(self):
        super().setUp()
        self.admin = self.login(TestDataFactory.create_admin())

    def test_non_admin_cannot_list_users(self):
        self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_change_role_writes_audit_log(self):
        user = TestDataFactory.create_user()
        response = self.client.patch(f'/api/v1/users/{user.id}/role/', {'role': 'MANAGER'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.role, User.ROLE_MANAGER)
        log = AuditLog.objects.get(action='role_change')
        self.assertEqual(log.changes['role'], {'old': 'SALES', 'new': 'MANAGER'})
        self.assertEqual(log.user, self.admin)

    def test_cannot_change_own_role(self):
        response = self.client.patch(f'/api/v1/users/{self.admin.id}/role/', {'role': 'SALES'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_role_rejected(self):
        user = TestDataFactory.create_user()
        response = self.client.patch(f'/api/v1/users/{user.id}/role/', {'role': 'OWNER'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
