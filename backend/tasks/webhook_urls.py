from django.urls import path
from .webhook_views import task_update_webhook_view

urlpatterns = [
    # Inbound task updates from the automation tool (POST JSON or GET query)
    path('task-update/', task_update_webhook_view, name='webhook-task-update'),
]
