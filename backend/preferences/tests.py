# preferences/tests.py
"""
Preferences App Test Suite
==========================

Tests for prioritization preferences, integration settings and the model
catalog endpoints.

Test Categories:
----------------
1. PriorityPreferences Model Tests - Validation logic
2. Preferences API Tests - HTTP endpoints
3. AppSettings API Tests - Secrets stay write-only
4. Model Catalog API Tests
"""

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from tasks.ai_engine.catalog import DEFAULT_AI_MODEL_ID

from .models import AppSettings, PriorityPreferences

User = get_user_model()


# ===========================================================================
# MODEL TESTS
# ===========================================================================

class PriorityPreferencesModelTest(TestCase):
    """Tests for the PriorityPreferences model validation logic."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )

    def test_defaults_save_successfully(self):
        """A fresh preferences row is Balanced with the default keywords."""
        preferences = PriorityPreferences.objects.create(user=self.user)

        self.assertEqual(preferences.focus, 'Balanced')
        self.assertEqual(preferences.custom_keywords, ['urgent', 'deadline', 'critical', 'blocker'])
        self.assertAlmostEqual(preferences.urgency_weight, 0.4, places=4)
        self.assertAlmostEqual(preferences.importance_weight, 0.6, places=4)

    def test_three_categories_are_allowed(self):
        preferences = PriorityPreferences(
            user=self.user,
            focus='Categories',
            preferred_categories=['Work', 'Health', 'Finance']
        )

        # Should not raise
        preferences.full_clean()

    def test_four_categories_raise_validation_error(self):
        """More than three preferred categories is rejected."""
        preferences = PriorityPreferences(
            user=self.user,
            preferred_categories=['Work', 'Health', 'Finance', 'Errands']
        )

        with self.assertRaises(ValidationError) as ctx:
            preferences.full_clean()

        self.assertIn('preferred_categories', ctx.exception.message_dict)

    def test_unknown_category_raises_validation_error(self):
        preferences = PriorityPreferences(user=self.user, preferred_categories=['Gardening'])

        with self.assertRaises(ValidationError):
            preferences.full_clean()

    def test_keywords_are_stripped(self):
        preferences = PriorityPreferences(user=self.user, custom_keywords=['  invoice ', '', 'tax'])

        preferences.full_clean()

        self.assertEqual(preferences.custom_keywords, ['invoice', 'tax'])

    def test_non_string_keyword_raises_validation_error(self):
        preferences = PriorityPreferences(user=self.user, custom_keywords=['ok', 3])

        with self.assertRaises(ValidationError):
            preferences.full_clean()

    def test_weight_above_one_raises_error(self):
        """Individual weight > 1.0 should raise ValidationError."""
        preferences = PriorityPreferences(user=self.user, urgency_weight=1.5)

        with self.assertRaises(ValidationError):
            preferences.full_clean()

    def test_to_contract_copies_every_field(self):
        preferences = PriorityPreferences.objects.create(
            user=self.user,
            focus='Deadlines',
            urgency_threshold_preset='3 days',
            custom_keywords=['invoice'],
        )

        contract = preferences.to_contract()

        self.assertEqual(contract.focus, 'Deadlines')
        self.assertEqual(contract.urgency_threshold_preset, '3 days')
        self.assertEqual(contract.urgency_window_days, 3)
        self.assertEqual(contract.custom_keywords, ['invoice'])


# ===========================================================================
# API ENDPOINT TESTS
# ===========================================================================

class PreferencesAPITest(APITestCase):
    """Tests for the preferences API endpoints."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='apiuser',
            email='api@example.com',
            password='testpass123'
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.preferences_url = '/api/v1/preferences/'

    def test_get_creates_defaults_if_none_exist(self):
        """GET should create default preferences if user has none."""
        response = self.client.get(self.preferences_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['focus'], 'Balanced')
        self.assertEqual(PriorityPreferences.objects.filter(user=self.user).count(), 1)

    def test_patch_focus_and_preset(self):
        response = self.client.patch(
            self.preferences_url,
            {'focus': 'Deadlines', 'urgency_threshold_preset': '1 day'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['focus'], 'Deadlines')
        self.assertEqual(response.data['urgency_threshold_preset'], '1 day')

    def test_patch_too_many_categories_returns_400(self):
        response = self.client.patch(
            self.preferences_url,
            {'preferred_categories': ['Work', 'Health', 'Finance', 'Errands']},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('preferred_categories', response.data)

    def test_patch_unknown_focus_returns_400(self):
        response = self.client.patch(self.preferences_url, {'focus': 'Vibes'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unauthenticated_request_rejected(self):
        """Unauthenticated requests should be rejected."""
        self.client.force_authenticate(user=None)

        response = self.client.get(self.preferences_url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AppSettingsAPITest(APITestCase):
    """Secrets are accepted on write and never echoed back."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='settingsuser',
            email='settings@example.com',
            password='testpass123'
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.settings_url = '/api/v1/preferences/settings/'

    def test_get_returns_defaults(self):
        response = self.client.get(self.settings_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['selected_ai_model'], DEFAULT_AI_MODEL_ID)
        self.assertEqual(response.data['incoming_webhook_header_name'], 'X-TaskHook-Secret')
        self.assertFalse(response.data['has_api_key'])

    def test_keys_are_write_only(self):
        response = self.client.patch(
            self.settings_url,
            {'api_key': 'sk-secret', 'incoming_webhook_secret': 'hook-secret'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('api_key', response.data)
        self.assertNotIn('incoming_webhook_secret', response.data)
        self.assertTrue(response.data['has_api_key'])
        self.assertTrue(response.data['has_incoming_webhook_secret'])
        self.assertEqual(AppSettings.objects.get(user=self.user).api_key, 'sk-secret')

    def test_last_batch_cost_is_read_only(self):
        response = self.client.patch(self.settings_url, {'last_batch_ai_cost': 5.0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['last_batch_ai_cost'], 0.0)

    def test_blank_header_name_rejected(self):
        response = self.client.patch(
            self.settings_url, {'incoming_webhook_header_name': '   '}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ModelCatalogAPITest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='cataloguser',
            email='catalog@example.com',
            password='testpass123'
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_lists_supported_models(self):
        response = self.client.get('/api/v1/preferences/models/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['default_model'], DEFAULT_AI_MODEL_ID)
        ids = [m['id'] for m in response.data['models']]
        self.assertIn('xai/grok-1', ids)
        self.assertIn(DEFAULT_AI_MODEL_ID, ids)
