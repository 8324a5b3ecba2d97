"""WSGI config for the tphome project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tphome.settings')

application = get_wsgi_application()
