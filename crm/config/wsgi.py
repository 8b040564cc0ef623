"""
WSGI config for the crm project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'crm.config.settings')

application = get_wsgi_application()
