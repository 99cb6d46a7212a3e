import logging

from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated

from capshop.core.responses import success_response
from .dashboard import (
    compute_stats, compute_category_distribution, compute_recent_activity,
    compute_low_stock, compute_sales_summary,
)

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_MAX_LIMIT = 100


def _int_param(request, name, default):
    value = request.query_params.get(name)
    if value in (None, ''):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: ['A valid integer is required.']})
    if number < 0:
        raise ValidationError({name: ['Must be zero or greater.']})
    return number


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Totals, alerts and sales by status"""
    data = compute_stats(settings.LOW_STOCK_ITEM_THRESHOLD, settings.LOW_STOCK_MATERIAL_THRESHOLD)
    return success_response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def category_distribution(request):
    """Number of items per category"""
    return success_response(compute_category_distribution())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def recent_activity(request):
    """Latest changes across items, materials, orders and sales"""
    limit = _int_param(request, 'limit', 10)
    limit = max(1, min(limit, RECENT_ACTIVITY_MAX_LIMIT))
    return success_response(compute_recent_activity(limit))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock(request):
    """Items and raw materials at or below their thresholds"""
    item_threshold = _int_param(request, 'itemThreshold', settings.LOW_STOCK_ITEM_THRESHOLD)
    material_threshold = _int_param(request, 'materialThreshold', settings.LOW_STOCK_MATERIAL_THRESHOLD)
    return success_response(compute_low_stock(item_threshold, material_threshold))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_summary(request):
    """Revenue, average order value, sale count and current-month revenue"""
    return success_response(compute_sales_summary())
