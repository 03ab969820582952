"""
ASGI config for the clinic project.

Only plain HTTP is served; the API has no websocket surface.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

from clinicsite.logconfig import configure_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "clinicsite.settings")
configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

application = get_asgi_application()
