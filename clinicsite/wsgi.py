"""
WSGI config for the clinic project.

Only the REST API is served over WSGI; the chat WebSocket requires the
ASGI entrypoint in :mod:`clinicsite.asgi`.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinicsite.settings')

application = get_wsgi_application()
