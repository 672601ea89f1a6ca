"""
WSGI config for the Django application.

The webhook endpoint is synchronous and each delivery runs in a single
database transaction, so any WSGI server works. ASGI is available in
asgi.py for deployments that prefer it.

This file exposes the WSGI callable as a module-level variable named `application`.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
