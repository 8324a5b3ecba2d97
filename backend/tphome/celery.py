import os
from dotenv import load_dotenv
load_dotenv()  # same .env as settings.py
from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tphome.settings')

app = Celery('tphome')

# namespace='CELERY' means all celery-related configuration keys
# should have a `CELERY_` prefix.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Registered apps are discovered lazily; the AI engine lives in a subpackage
# so it is listed explicitly.
app.autodiscover_tasks()
app.autodiscover_tasks(['tasks.ai_engine'], related_name='celery_tasks')
