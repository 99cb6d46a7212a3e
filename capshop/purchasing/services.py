"""
Delivery detection and raw material replenishment for material orders.

An order moves ``pending -> ordered -> received``. When tracking shows the
shipment arrived, ``update_delivery_status`` claims the ``ordered -> received``
transition and tops up every raw material in the order by its group quantity.
The transition, the increments and the ``inventory_processed`` flag commit
together, so a repeated or concurrent call can never add stock twice.
"""
import logging

from django.db import transaction, DatabaseError
from django.utils import timezone
from rest_framework.exceptions import APIException

from capshop.catalog.services import add_raw_material_stock
from capshop.core.cache_utils import invalidate_dashboard_cache
from capshop.core.exceptions import InvalidState, UpstreamFailure
from capshop.core.utils import create_automation_log
from .models import OrderMaterial
from .tracking import TrackingError, fetch_tracking_events, is_delivered

logger = logging.getLogger(__name__)

TABLE_NAME = 'order_materials'


def _claim_inventory(order_id):
    """Mark the order processed; False if another call already did"""
    return bool(
        OrderMaterial.objects.filter(pk=order_id, inventory_processed=False)
        .update(inventory_processed=True, updated_at=timezone.now())
    )


def _replenish(order):
    """Add each group's quantity to every design's raw material. Stops at the first failure."""
    replenished = []
    groups = order.groups.prefetch_related('designs__raw_material')
    for group in groups:
        for design in group.designs.all():
            new_quantity = add_raw_material_stock(design.raw_material_id, group.quantity)
            replenished.append({
                'raw_material_id': design.raw_material_id,
                'raw_material_name': design.raw_material.name,
                'quantity_added': group.quantity,
                'new_quantity': str(new_quantity),
            })
    return replenished


def _log_replenishment(order, replenished, request):
    for entry in replenished:
        create_automation_log(
            action='inventory_auto_update',
            table_name='raw_materials',
            record_id=entry['raw_material_id'],
            details={'order_id': order.id, **entry},
            request=request,
        )
    create_automation_log(
        action='order_processed_received',
        table_name=TABLE_NAME,
        record_id=order.id,
        details={
            'distributor': order.distributor,
            'materials_updated': len(replenished),
        },
        request=request,
    )


def _log_processing_error(order, error, request):
    logger.error(f"Inventory processing failed for order {order.id}: {str(error)}")
    create_automation_log(
        action='order_processing_error',
        table_name=TABLE_NAME,
        record_id=order.id,
        details={'error': str(error)},
        request=request,
    )


def update_delivery_status(order, delivered, request=None):
    """
    Move an ``ordered`` order to ``received`` and replenish its raw materials.

    No-op unless ``delivered`` is true and the order is currently ``ordered``.

    Returns:
        dict with ``updated`` (status changed), ``status`` and ``replenished``
        (one entry per raw material increment)
    """
    if not delivered:
        return {'updated': False, 'status': order.status, 'replenished': []}

    try:
        with transaction.atomic():
            claimed = OrderMaterial.objects.filter(pk=order.pk, status='ordered').update(
                status='received', updated_at=timezone.now()
            )
            if not claimed:
                order.refresh_from_db(fields=['status', 'inventory_processed'])
                logger.info(f"Delivery update skipped: order {order.id} is {order.status}")
                return {'updated': False, 'status': order.status, 'replenished': []}

            replenished = _replenish(order) if _claim_inventory(order.pk) else []
    except (APIException, DatabaseError) as e:
        _log_processing_error(order, e, request)
        raise

    order.refresh_from_db()
    invalidate_dashboard_cache()
    logger.info(f"Order {order.id} received, {len(replenished)} raw material(s) replenished")

    create_automation_log(
        action='status_auto_update_delivered',
        table_name=TABLE_NAME,
        record_id=order.id,
        details={
            'old_status': 'ordered',
            'new_status': 'received',
            'tracking_number': order.tracking_number,
        },
        request=request,
    )
    _log_replenishment(order, replenished, request)
    return {'updated': True, 'status': order.status, 'replenished': replenished}


def process_received_order(order, request=None):
    """
    Replenish raw materials for an order that is already ``received``
    (e.g. set manually) and whose inventory was never processed.

    Raises:
        InvalidState: order is not received, or was already processed
    """
    try:
        with transaction.atomic():
            claimed = OrderMaterial.objects.filter(
                pk=order.pk, status='received', inventory_processed=False
            ).update(inventory_processed=True, updated_at=timezone.now())
            if not claimed:
                order.refresh_from_db(fields=['status', 'inventory_processed'])
                if order.status != 'received':
                    raise InvalidState(f"Order must be received before processing inventory (current status: {order.status})")
                raise InvalidState('Inventory for this order was already processed')

            replenished = _replenish(order)
    except InvalidState:
        raise
    except (APIException, DatabaseError) as e:
        _log_processing_error(order, e, request)
        raise

    order.refresh_from_db()
    invalidate_dashboard_cache()
    logger.info(f"Order {order.id} inventory processed, {len(replenished)} raw material(s) replenished")
    _log_replenishment(order, replenished, request)
    return {'status': order.status, 'replenished': replenished}


def check_delivery(order, apply=False, request=None):
    """
    Ask the order's carrier whether the shipment was delivered.

    With ``apply`` the answer is fed into ``update_delivery_status``.
    Tracking failures are logged and raised as UpstreamFailure.
    """
    if not order.tracking_number:
        raise InvalidState('Order has no tracking number')
    if not order.carrier:
        raise InvalidState('Order has no carrier')

    try:
        events = fetch_tracking_events(order.carrier, order.tracking_number)
    except TrackingError as e:
        logger.error(f"Delivery check failed for order {order.id}: {str(e)}")
        create_automation_log(
            action='delivery_status_check_error',
            table_name=TABLE_NAME,
            record_id=order.id,
            details={
                'carrier': order.carrier,
                'tracking_number': order.tracking_number,
                'error': str(e),
            },
            request=request,
        )
        raise UpstreamFailure(str(e))

    delivered = is_delivered(events)
    result = {
        'order_id': order.id,
        'carrier': order.carrier,
        'tracking_number': order.tracking_number,
        'isDelivered': delivered,
        'events': events,
    }
    if apply:
        result['update'] = update_delivery_status(order, delivered, request=request)
    return result
