import time
import uuid

import structlog

logger = structlog.get_logger(__name__)


class RequestContextMiddleware:
    """Bind request id, user and clinic to structlog for the request's lifetime."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            structlog.contextvars.bind_contextvars(user_id=user.id, clinic_id=getattr(user, 'clinic_id', None))
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        if request.path.startswith('/api/'):
            logger.info('http.request', method=request.method, path=request.path,
                        status=response.status_code, elapsed_ms=elapsed_ms)
        response['X-Request-ID'] = request_id
        structlog.contextvars.clear_contextvars()
        return response
