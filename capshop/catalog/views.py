import logging

from django.conf import settings
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from capshop.core.cache_utils import invalidate_dashboard_cache
from capshop.core.exceptions import Conflict
from capshop.core.responses import success_response
from capshop.core.utils import create_automation_log
from .filters import ItemFilter, RawMaterialFilter
from .models import Item, RawMaterial, Extra
from .serializers import (
    ItemSerializer, ItemQuantityReduceSerializer,
    RawMaterialSerializer, ExtraSerializer,
)
from .services import decrement_item_stock, ensure_item_deletable, ensure_raw_material_deletable

logger = logging.getLogger(__name__)


# Item views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def item_list_create(request):
    """List all items or create a new item"""
    if request.method == 'GET':
        queryset = Item.objects.prefetch_related('materials')
        filterset = ItemFilter(request.query_params, queryset=queryset)
        serializer = ItemSerializer(filterset.qs, many=True)
        return success_response(serializer.data)

    serializer = ItemSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    item = serializer.save()
    logger.info(f"Item {item.id} created: {item.name} (qty {item.quantity})")
    return success_response(
        ItemSerializer(item).data,
        message='Item created successfully',
        status_code=status.HTTP_201_CREATED,
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def item_detail(request, pk):
    """Retrieve, update or delete an item"""
    item = get_object_or_404(Item, pk=pk)

    if request.method == 'GET':
        return success_response(ItemSerializer(item).data)
    elif request.method in ('PUT', 'PATCH'):
        # Omitted fields keep their current value
        serializer = ItemSerializer(item, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        item = serializer.save()
        return success_response(ItemSerializer(item).data, message='Item updated successfully')
    else:  # DELETE
        ensure_item_deletable(item)
        item_id = item.id
        try:
            item.delete()
        except ProtectedError:
            raise Conflict('This item is used in one or more sales')
        logger.info(f"Item {item_id} deleted")
        return success_response(message='Item deleted successfully')


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def item_reduce_quantity(request, pk):
    """Take units out of stock without a sale (gifts, samples)"""
    serializer = ItemQuantityReduceSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    quantity = serializer.validated_data['quantity']

    decrement_item_stock(pk, quantity)
    invalidate_dashboard_cache()

    item = Item.objects.prefetch_related('materials').get(pk=pk)
    create_automation_log(
        action='stock_gift',
        table_name='items',
        record_id=item.id,
        details={
            'item_name': item.name,
            'quantity': quantity,
            'new_quantity': item.quantity,
            'reason': serializer.validated_data.get('reason', ''),
        },
        request=request,
    )
    logger.info(f"Item {item.id} reduced by {quantity}, now {item.quantity}")
    return success_response(
        ItemSerializer(item).data,
        message=f"Quantity reduced by {quantity}. New quantity: {item.quantity}",
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def item_low_stock(request, threshold=None):
    """Items at or below the threshold, lowest quantity first"""
    if threshold is None:
        threshold = settings.LOW_STOCK_ITEM_THRESHOLD
    items = Item.objects.prefetch_related('materials').filter(quantity__lte=threshold).order_by('quantity', 'name')
    serializer = ItemSerializer(items, many=True)
    return success_response(serializer.data, threshold=threshold)


# Raw material views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def raw_material_list_create(request):
    """List all raw materials or create a new raw material"""
    if request.method == 'GET':
        filterset = RawMaterialFilter(request.query_params, queryset=RawMaterial.objects.all())
        serializer = RawMaterialSerializer(filterset.qs, many=True)
        return success_response(serializer.data)

    serializer = RawMaterialSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    material = serializer.save()
    logger.info(f"Raw material {material.id} created: {material.name}")
    return success_response(
        RawMaterialSerializer(material).data,
        message='Raw material created successfully',
        status_code=status.HTTP_201_CREATED,
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def raw_material_detail(request, pk):
    """Retrieve, update or delete a raw material"""
    material = get_object_or_404(RawMaterial, pk=pk)

    if request.method == 'GET':
        return success_response(RawMaterialSerializer(material).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RawMaterialSerializer(material, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        material = serializer.save()
        return success_response(RawMaterialSerializer(material).data, message='Raw material updated successfully')
    else:  # DELETE
        ensure_raw_material_deletable(material)
        material_id = material.id
        try:
            material.delete()
        except ProtectedError:
            raise Conflict('This material is still referenced')
        logger.info(f"Raw material {material_id} deleted")
        return success_response(message='Raw material deleted successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def raw_material_low_stock(request, threshold=None):
    """Raw materials at or below the threshold, lowest quantity first"""
    if threshold is None:
        threshold = settings.LOW_STOCK_MATERIAL_THRESHOLD
    materials = RawMaterial.objects.filter(quantity__lte=threshold).order_by('quantity', 'name')
    serializer = RawMaterialSerializer(materials, many=True)
    return success_response(serializer.data, threshold=threshold)


# Extra views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def extra_list_create(request):
    """List all extras or create a new extra"""
    if request.method == 'GET':
        serializer = ExtraSerializer(Extra.objects.all(), many=True)
        return success_response(serializer.data)

    serializer = ExtraSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    serializer.save()
    return success_response(serializer.data, message='Extra created successfully', status_code=status.HTTP_201_CREATED)
