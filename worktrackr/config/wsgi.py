"""
WSGI config for the WorkTrackr Cloud API.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'worktrackr.config.settings')

application = get_wsgi_application()
