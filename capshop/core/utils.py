"""Utility functions for automation logging"""
import logging

from .models import AutomationLog

logger = logging.getLogger(__name__)


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


def create_automation_log(action=None, table_name=None, record_id=None, details=None,
                          request=None, user=None):
    """
    Create an automation log entry

    Args:
        action: Action type (stock_sale, inventory_auto_update, ...)
        table_name: Table the record lives in (items, raw_materials, sales, order_materials)
        record_id: ID of the record (stored as string)
        details: Dictionary describing what happened
        request: Optional request (for user and IP)
        user: Optional user override (defaults to request.user if request provided)

    Never raises: a failed log write must not fail the operation being logged.
    Call it outside of transaction.atomic() blocks.
    """
    try:
        if not action or not table_name or record_id is None:
            logger.warning(
                f"Automation log skipped: missing required fields "
                f"(action={action}, table_name={table_name}, record_id={record_id})"
            )
            return None

        log_user = user
        if log_user is None and request is not None:
            log_user = getattr(request, 'user', None)
        if log_user is not None and not getattr(log_user, 'is_authenticated', False):
            log_user = None

        return AutomationLog.objects.create(
            user=log_user,
            action=action,
            table_name=table_name,
            record_id=str(record_id),
            details=details or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        logger.error(f"Failed to create automation log: {str(e)}")
        return None
