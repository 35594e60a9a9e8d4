import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for failures raised by the service layer."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'internal'

    def __init__(self, message: str = '', *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class InvalidArgument(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'invalid_argument'


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'forbidden'


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'


class Internal(ServiceError):
    pass


_DRF_CODES = {
    400: 'invalid_argument',
    401: 'unauthenticated',
    403: 'forbidden',
    404: 'not_found',
    405: 'method_not_allowed',
    429: 'throttled',
}


def error_body(code: str, message) -> dict:
    return {'ok': False, 'error': {'code': code, 'message': message}}


def api_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        if isinstance(exc, Internal):
            logger.error('internal error in %s: %s', _view_name(context), exc.message)
        return Response(error_body(exc.code, exc.message), status=exc.status_code)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', _view_name(context), exc_info=exc)
        return Response(error_body('server_error', 'Internal server error'), status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    code = _DRF_CODES.get(resp.status_code, 'api_error')
    return Response(error_body(code, detail), status=resp.status_code, headers=_passthrough_headers(resp))


def _view_name(context) -> str:
    view = (context or {}).get('view')
    return type(view).__name__ if view is not None else '<unknown>'


def _passthrough_headers(resp) -> dict:
    return {k: v for k, v in resp.items() if k in ('WWW-Authenticate', 'Retry-After', 'Allow')}
