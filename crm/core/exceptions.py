"""
API exception handling.

Every error leaves the API as ``{"error": "<message>"}`` with the matching
HTTP status. Unexpected exceptions are logged and reported as a 500.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _detail_message(detail):
    if isinstance(detail, (list, tuple)):
        return ' '.join(str(item) for item in detail)
    if isinstance(detail, dict):
        return detail.get('detail') or detail.get('error') or str(detail)
    return str(detail)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    # Field-level validation errors keep DRF's shape so clients can map them to inputs
    if isinstance(exc, ValidationError):
        if isinstance(response.data, dict) and 'error' not in response.data:
            response.data = {'error': 'Validation failed', **response.data}
        return response

    response.data = {'error': _detail_message(response.data)}
    return response
