"""
WSGI config for the Pema PDV project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'pema.settings')

application = get_wsgi_application()
