import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated

from capshop.core.responses import success_response
from .models import OrderMaterial
from .serializers import OrderMaterialSerializer, DeliveryStatusSerializer
from .services import update_delivery_status, process_received_order, check_delivery

logger = logging.getLogger(__name__)

VALID_STATUSES = [choice for choice, _ in OrderMaterial.STATUS_CHOICES]


def _order_queryset():
    return OrderMaterial.objects.select_related('created_by').prefetch_related(
        'groups__designs__raw_material'
    )


def _is_true(value):
    return str(value).lower() in ('1', 'true', 'yes')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_material_list_create(request):
    """List all material orders or create a new one"""
    if request.method == 'GET':
        queryset = _order_queryset()
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        serializer = OrderMaterialSerializer(queryset, many=True)
        return success_response(serializer.data)

    serializer = OrderMaterialSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = serializer.save(created_by=request.user)
    logger.info(f"Order material {order.id} created for {order.distributor}")
    return success_response(
        OrderMaterialSerializer(_order_queryset().get(pk=order.pk)).data,
        message='Order material created successfully',
        status_code=status.HTTP_201_CREATED,
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_material_detail(request, pk):
    """Retrieve, update or delete a material order"""
    order = get_object_or_404(OrderMaterial, pk=pk)

    if request.method == 'GET':
        return success_response(OrderMaterialSerializer(_order_queryset().get(pk=pk)).data)
    elif request.method in ('PUT', 'PATCH'):
        # Manual edits (status included) never touch raw material stock
        serializer = OrderMaterialSerializer(order, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(
            OrderMaterialSerializer(_order_queryset().get(pk=pk)).data,
            message='Order material updated successfully',
        )
    else:  # DELETE
        order.delete()
        logger.info(f"Order material {pk} deleted")
        return success_response(message='Order material deleted successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_material_by_status(request, order_status):
    """List material orders with the given status"""
    if order_status not in VALID_STATUSES:
        raise ValidationError({'status': [f"Status must be one of: {', '.join(VALID_STATUSES)}"]})
    serializer = OrderMaterialSerializer(_order_queryset().filter(status=order_status), many=True)
    return success_response(serializer.data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_material_check_delivery(request, pk):
    """
    Look the order's shipment up with its carrier

    Pass apply=true (query param or body) to mark the order received and
    replenish stock when the carrier reports delivery.
    """
    order = get_object_or_404(OrderMaterial, pk=pk)
    apply = _is_true(request.query_params.get('apply', False))
    if request.method == 'POST':
        apply = apply or _is_true(request.data.get('apply', False))

    result = check_delivery(order, apply=apply, request=request)
    return success_response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_material_update_delivery_status(request, pk):
    """Mark an ordered shipment as received when delivered and replenish stock"""
    order = get_object_or_404(OrderMaterial, pk=pk)
    serializer = DeliveryStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = update_delivery_status(order, serializer.validated_data['isDelivered'], request=request)
    message = 'Order marked as received and inventory updated' if result['updated'] else 'No status change'
    return success_response(
        {**result, 'order': OrderMaterialSerializer(_order_queryset().get(pk=pk)).data},
        message=message,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_material_process_inventory(request, pk):
    """Replenish raw materials for a received order that was not processed yet"""
    order = get_object_or_404(OrderMaterial, pk=pk)
    result = process_received_order(order, request=request)
    return success_response(
        {**result, 'order': OrderMaterialSerializer(_order_queryset().get(pk=pk)).data},
        message='Inventory processed successfully',
    )
