# preferences/views.py

from rest_framework import generics, permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from tasks.ai_engine.catalog import DEFAULT_AI_MODEL_ID, SUPPORTED_AI_MODELS

from .models import AppSettings, PriorityPreferences
from .serializers import AppSettingsSerializer, PriorityPreferencesSerializer


class PriorityPreferencesView(generics.RetrieveUpdateAPIView):
    """
    GET: The user's prioritization preferences (created with defaults on first read).
    PUT/PATCH: Update them. Validation follows PriorityPreferences.clean().
    """
    serializer_class = PriorityPreferencesSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        preferences, _created = PriorityPreferences.objects.get_or_create(user=self.request.user)
        return preferences

preferences_view = PriorityPreferencesView.as_view()


class AppSettingsView(generics.RetrieveUpdateAPIView):
    """
    GET, PUT, PATCH for the user's integration settings: AI model and keys,
    outbound webhook URL, inbound webhook secret.
    """
    serializer_class = AppSettingsSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        app_settings, _created = AppSettings.objects.get_or_create(user=self.request.user)
        return app_settings

app_settings_view = AppSettingsView.as_view()


class AIModelCatalogView(APIView):
    """GET: the supported AI models with their pricing summaries."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response({
            'default_model': DEFAULT_AI_MODEL_ID,
            'models': [model.to_dict() for model in SUPPORTED_AI_MODELS],
        })

model_catalog_view = AIModelCatalogView.as_view()
