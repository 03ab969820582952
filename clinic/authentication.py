"""
Cookie session authentication for the API.

DRF's stock ``SessionAuthentication`` has no ``WWW-Authenticate`` value,
which makes DRF answer unauthenticated requests with 403.  The front-end
expects 401 for "not logged in" and 403 for "logged in but not allowed",
so this subclass supplies a header value.
"""
from __future__ import annotations

from rest_framework import authentication


class SessionAuthentication(authentication.SessionAuthentication):
    """Django session cookie authentication answering 401 when missing."""

    def authenticate_header(self, request) -> str:
        return 'Session realm="api"'
