"""
Comprehensive test suite for Core module
Tests: JWT auth flow, automation logs, health check, error envelope
"""
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from capshop.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from capshop.core.models import AutomationLog
from capshop.core.utils import create_automation_log, get_client_ip
from capshop.core.exceptions import first_error_message


class AuthAPITests(TestCase):
    """Test login, refresh, logout and current user endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='ventas@gorros.mx', password='secreto123')
        self.client = APIClient()

    def _login(self, email='ventas@gorros.mx', password='secreto123'):
        return self.client.post('/api/v1/auth/login/', {'email': email, 'password': password}, format='json')

    def test_login_success(self):
        """Test login returns token pair and user"""
        response = self._login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertIn('access', response.data['data'])
        self.assertIn('refresh', response.data['data'])
        self.assertEqual(response.data['data']['user']['email'], 'ventas@gorros.mx')

    def test_login_wrong_password(self):
        """Test login with wrong password is rejected"""
        response = self._login(password='incorrecto')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error'], 'Unauthorized')

    def test_login_inactive_user(self):
        """Test inactive users cannot log in"""
        self.user.is_active = False
        self.user.save()
        response = self._login()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        """Test refresh issues a new access token"""
        tokens = self._login().data['data']
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['data'])

    def test_refresh_invalid_token(self):
        """Test refresh with garbage token"""
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_logout_blacklists_refresh_token(self):
        """Test a logged out refresh token can no longer be used"""
        tokens = self._login().data['data']
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        response = self.client.post('/api/v1/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_requires_refresh(self):
        """Test logout without refresh token"""
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.post('/api/v1/auth/logout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('refresh', response.data['errors'])

    def test_me(self):
        """Test current user endpoint"""
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['id'], self.user.id)

    def test_me_requires_authentication(self):
        """Test unauthenticated requests get the error envelope"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error'], 'Unauthorized')
        self.assertTrue(response.data['message'])


class AutomationLogAPITests(TestCase):
    """Test automation log listing and filters"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        create_automation_log(action='stock_sale', table_name='items', record_id=1, details={'quantity': 2})
        create_automation_log(action='sale_create', table_name='sales', record_id=7)
        create_automation_log(action='inventory_auto_update', table_name='raw_materials', record_id=3)

    def test_list_logs(self):
        """Test logs are listed newest first"""
        response = self.client.get('/api/v1/automation-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['data'][0]['action'], 'inventory_auto_update')

    def test_filter_by_tables(self):
        """Test comma separated table filter"""
        response = self.client.get('/api/v1/automation-logs/?tables=items,sales')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({log['table_name'] for log in response.data['data']}, {'items', 'sales'})

    def test_filter_by_record_id(self):
        """Test record filter"""
        response = self.client.get('/api/v1/automation-logs/?tables=sales&recordId=7')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['data'][0]['record_id'], '7')

    def test_limit(self):
        """Test limit param"""
        response = self.client.get('/api/v1/automation-logs/?limit=2')
        self.assertEqual(response.data['count'], 2)

    def test_invalid_limit(self):
        """Test non-numeric limit"""
        response = self.client.get('/api/v1/automation-logs/?limit=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AutomationLogUtilsTests(TestCase):
    """Test automation log helper"""

    def test_missing_fields_skipped(self):
        """Test entries without action are not written"""
        self.assertIsNone(create_automation_log(table_name='items', record_id=1))
        self.assertEqual(AutomationLog.objects.count(), 0)

    def test_record_id_stored_as_string(self):
        """Test record id coercion"""
        log = create_automation_log(action='stock_gift', table_name='items', record_id=42)
        self.assertEqual(log.record_id, '42')
        self.assertEqual(log.details, {})

    def test_get_client_ip_forwarded(self):
        """Test X-Forwarded-For takes precedence"""
        class FakeRequest:
            META = {'HTTP_X_FORWARDED_FOR': '10.0.0.1, 10.0.0.2', 'REMOTE_ADDR': '127.0.0.1'}
        self.assertEqual(get_client_ip(FakeRequest()), '10.0.0.1')
        self.assertIsNone(get_client_ip(None))


class ErrorEnvelopeTests(TestCase):
    """Test error message flattening"""

    def test_first_error_message(self):
        """Test nested validation detail becomes one line"""
        self.assertEqual(first_error_message({'name': ['This field is required.']}), 'name: This field is required.')
        self.assertEqual(first_error_message({'non_field_errors': ['Bad input']}), 'Bad input')
        self.assertEqual(first_error_message(['first', 'second']), 'first')
        self.assertEqual(first_error_message('plain'), 'plain')

    def test_not_found_envelope(self):
        """Test unknown records return the envelope"""
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/v1/items/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error'], 'Not found')


class HealthCheckTests(TestCase):
    """Test health endpoint"""

    def test_health_ok(self):
        """Test health check without authentication"""
        response = APIClient().get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'OK')
        self.assertEqual(response.data['database'], 'ok')
