from django.urls import path, include

urlpatterns = [
    path('v1/auth/', include('users.urls')),
    path('v1/preferences/', include('preferences.urls')),
    path('v1/tasks/', include('tasks.urls')),
    path('v1/webhooks/', include('tasks.webhook_urls')),
]
