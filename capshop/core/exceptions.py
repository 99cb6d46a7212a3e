"""
API error types and the project-wide DRF exception handler.

Every error leaves the API as ``{"success": false, "error": ..., "message": ...}``.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException, NotFound, ValidationError, NotAuthenticated,
    AuthenticationFailed, PermissionDenied, MethodNotAllowed,
)
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

__all__ = [
    'NotFound', 'ValidationError', 'OutOfStock', 'Conflict',
    'InvalidState', 'UpstreamFailure', 'api_exception_handler',
]


class OutOfStock(APIException):
    """Requested decrement exceeds the stock on hand"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Insufficient stock.'
    default_code = 'out_of_stock'


class Conflict(APIException):
    """Delete refused because other rows still reference the object"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This record is still referenced.'
    default_code = 'conflict'


class InvalidState(APIException):
    """Operation not allowed in the object's current status"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Operation not allowed in the current state.'
    default_code = 'invalid_state'


class UpstreamFailure(APIException):
    """Database or external service call failed"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Upstream service failure.'
    default_code = 'upstream_failure'


ERROR_TITLES = [
    (ValidationError, 'Validation failed'),
    (OutOfStock, 'Insufficient stock'),
    (Conflict, 'Cannot delete'),
    (InvalidState, 'Invalid state'),
    (NotFound, 'Not found'),
    (NotAuthenticated, 'Unauthorized'),
    (AuthenticationFailed, 'Unauthorized'),
    (PermissionDenied, 'Permission denied'),
    (MethodNotAllowed, 'Method not allowed'),
]

METHOD_VERBS = {
    'GET': 'fetch',
    'POST': 'create',
    'PUT': 'update',
    'PATCH': 'update',
    'DELETE': 'delete',
}


def first_error_message(detail):
    """Flatten DRF error detail (str, list or dict) into one readable line"""
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = first_error_message(value)
            if field in ('non_field_errors', 'detail'):
                return message
            return f"{field}: {message}"
        return ''
    if isinstance(detail, (list, tuple)):
        return first_error_message(detail[0]) if detail else ''
    return str(detail)


def _error_title(exc, context):
    for exc_class, title in ERROR_TITLES:
        if isinstance(exc, exc_class):
            return title
    request = context.get('request') if context else None
    verb = METHOD_VERBS.get(getattr(request, 'method', ''), 'process')
    return f"Failed to {verb} request"


def api_exception_handler(exc, context):
    """Wrap DRF errors in the response envelope; map unexpected failures to 500"""
    if isinstance(exc, Http404):
        exc = NotFound(str(exc) or NotFound.default_detail)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = PermissionDenied()
    elif isinstance(exc, DatabaseError):
        logger.error(f"Database error: {exc}")
        exc = UpstreamFailure(str(exc))
    elif not isinstance(exc, APIException):
        logger.exception(f"Unexpected error: {exc}")
        exc = UpstreamFailure(str(exc) or UpstreamFailure.default_detail)

    response = exception_handler(exc, context)
    if response is None:
        return None

    payload = {
        'success': False,
        'error': _error_title(exc, context),
        'message': first_error_message(response.data),
    }
    if isinstance(exc, ValidationError):
        payload['errors'] = response.data
    response.data = payload
    return response
