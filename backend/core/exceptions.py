"""Error types and the API exception handler"""
import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)


class BusinessRuleError(APIException):
    """A request that is well formed but breaks a business rule"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Operation not allowed'
    default_code = 'business_rule'


def _first_message(detail, field=None):
    if isinstance(detail, dict):
        for key, value in detail.items():
            found = _first_message(value, key if field is None else field)
            if found[1] is not None:
                return found
        return None, None
    if isinstance(detail, (list, tuple)):
        for value in detail:
            found = _first_message(value, field)
            if found[1] is not None:
                return found
        return None, None
    return field, str(detail)


def flatten_errors(detail):
    """
    Reduce DRF error detail (dict/list/str) to a single message.

    Field errors are prefixed with the field name, non-field errors are not.
    """
    field, message = _first_message(detail)
    if message is None:
        return 'Invalid request'
    if field and field not in ('non_field_errors', 'detail', 'error'):
        return f'{field}: {message}'
    return message


def error_response(errors, status_code=status.HTTP_400_BAD_REQUEST):
    """Render serializer errors (or a message) as {'error': ...}"""
    if isinstance(errors, str):
        message = errors
    else:
        message = flatten_errors(errors)
    return Response({'error': message}, status=status_code)


def api_exception_handler(exc, context):
    """Render every handled failure as {'error': '<message>'}"""
    if isinstance(exc, ProtectedError):
        logger.warning(f"Refused delete of referenced record: {exc}")
        set_rollback()
        return Response(
            {'error': 'Cannot delete: record is referenced by other documents'},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, ObjectDoesNotExist):
        set_rollback()
        return Response({'error': str(exc) or 'Not found'}, status=status.HTTP_404_NOT_FOUND)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        message = flatten_errors(exc.detail)
    else:
        message = flatten_errors(getattr(exc, 'detail', response.data))

    response.data = {'error': message}
    return response
