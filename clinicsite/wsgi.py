"""
WSGI config for the clinic project.

It exposes the WSGI callable as a module-level variable named ``application``.
Logging is configured before Django loads so that every logger created
during app import goes through structlog.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

from clinicsite.logconfig import configure_logging

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinicsite.settings')
configure_logging(level=os.getenv('LOG_LEVEL', 'INFO'))

application = get_wsgi_application()
