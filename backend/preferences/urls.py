# preferences/urls.py

from django.urls import path
from .views import preferences_view, app_settings_view, model_catalog_view

urlpatterns = [
    # GET, PUT, PATCH (PriorityPreferences)
    path('', preferences_view, name='priority-preferences'),

    # GET, PUT, PATCH (AppSettings)
    path('settings/', app_settings_view, name='app-settings'),

    # GET (AI model catalog)
    path('models/', model_catalog_view, name='ai-models'),
]
