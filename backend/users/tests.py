# users/tests.py
"""
Users App Test Suite
====================

Registration, login and the per-user timezone that decides which calendar
day counts as "today".
"""

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

User = get_user_model()


class RegistrationAPITest(APITestCase):

    url = '/api/v1/auth/register/'

    def payload(self, **overrides):
        data = {
            'email': 'New.User@Example.com',
            'username': 'newuser',
            'password': 'Str0ng-passphrase!',
            'password2': 'Str0ng-passphrase!',
            'first_name': 'New',
            'last_name': 'User',
        }
        data.update(overrides)
        return data

    def test_register_defaults_to_utc(self):
        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='newuser')
        self.assertEqual(user.timezone, 'UTC')
        self.assertEqual(user.email, 'New.User@example.com')

    def test_register_with_timezone(self):
        response = self.client.post(self.url, self.payload(timezone='Europe/Berlin'), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(username='newuser').timezone, 'Europe/Berlin')

    def test_unknown_timezone_rejected(self):
        response = self.client.post(self.url, self.payload(timezone='Mars/Olympus'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('timezone', response.data)

    def test_password_mismatch_rejected(self):
        response = self.client.post(self.url, self.payload(password2='different'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)


class LoginAndProfileAPITest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='loginuser',
            email='login@example.com',
            password='testpass123'
        )

    def test_login_with_email_returns_tokens(self):
        response = self.client.post(
            '/api/v1/auth/login/',
            {'email': 'login@example.com', 'password': 'testpass123'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_patch_timezone(self):
        client = APIClient()
        client.force_authenticate(user=self.user)

        response = client.patch('/api/v1/auth/user/', {'timezone': 'America/New_York'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.timezone, 'America/New_York')

    def test_full_name_without_last_name(self):
        user = User.objects.create_user(
            username='ada',
            email='ada@example.com',
            password='testpass123',
            first_name='Ada',
        )

        self.assertEqual(user.get_full_name(), 'Ada')
        self.assertEqual(user.get_short_name(), 'Ada')
        self.assertEqual(str(user), 'ada@example.com')

    def test_email_is_read_only(self):
        client = APIClient()
        client.force_authenticate(user=self.user)

        client.patch('/api/v1/auth/user/', {'email': 'other@example.com'}, format='json')

        self.user.refresh_from_db()
        self.assertEqual(self.user.email, 'login@example.com')
