"""Utility functions for audit logging and record lookup"""
import logging

from django.http import Http404
from django.shortcuts import get_object_or_404 as django_get_object_or_404
from django.utils.text import capfirst
from rest_framework.exceptions import NotFound

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_object_or_404(klass, *args, **kwargs):
    """Like django's get_object_or_404, but answers "<Verbose name> not found" """
    try:
        return django_get_object_or_404(klass, *args, **kwargs)
    except Http404:
        meta = klass._meta if hasattr(klass, '_meta') else klass.model._meta
        raise NotFound(f'{capfirst(meta.verbose_name)} not found')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, status_change, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_reference: Business reference (SKU, order number, invoice number)
    """
    try:
        audit_user = user
        if audit_user is None and request is not None and hasattr(request, 'user'):
            audit_user = request.user

        if not action or not model_name or object_id is None:
            logger.warning(
                f"Audit log creation skipped: missing required fields "
                f"(action={action}, model_name={model_name}, object_id={object_id})"
            )
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_reference=object_reference,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None
        )
    except Exception as e:
        # Audit failures must not fail the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def pick_allowed(data, allowed_fields):
    """Keep only the keys of `data` listed in `allowed_fields`"""
    return {key: data[key] for key in allowed_fields if key in data}
