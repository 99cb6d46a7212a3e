from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated

from capshop.core.responses import success_response
from .filters import SaleFilter
from .models import Sale
from .serializers import SaleSerializer, QuoteSerializer
from .services import create_sale, update_sale, delete_sale, calculate_quote

VALID_STATUSES = [choice for choice, _ in Sale.STATUS_CHOICES]


def _sale_queryset():
    return Sale.objects.select_related('created_by').prefetch_related('sale_items__item', 'extras')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sale_list_create(request):
    """List all sales or create a new sale"""
    if request.method == 'GET':
        filterset = SaleFilter(request.query_params, queryset=_sale_queryset())
        serializer = SaleSerializer(filterset.qs, many=True)
        return success_response(serializer.data)

    serializer = SaleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    sale = create_sale(serializer.validated_data, user=request.user, request=request)
    return success_response(
        SaleSerializer(_sale_queryset().get(pk=sale.pk)).data,
        message='Sale created successfully',
        status_code=status.HTTP_201_CREATED,
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def sale_detail(request, pk):
    """Retrieve, update or delete a sale"""
    sale = get_object_or_404(_sale_queryset(), pk=pk)

    if request.method == 'GET':
        return success_response(SaleSerializer(sale).data)
    elif request.method in ('PUT', 'PATCH'):
        # Omitted fields keep their current value
        serializer = SaleSerializer(sale, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        sale = update_sale(sale, serializer.validated_data, request=request)
        return success_response(
            SaleSerializer(_sale_queryset().get(pk=sale.pk)).data,
            message='Sale updated successfully',
        )
    else:  # DELETE
        delete_sale(sale, request=request)
        return success_response(message='Sale deleted successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sale_by_status(request, sale_status):
    """List sales with the given status"""
    if sale_status not in VALID_STATUSES:
        raise ValidationError({'status': [f"Status must be one of: {', '.join(VALID_STATUSES)}"]})
    serializer = SaleSerializer(_sale_queryset().filter(status=sale_status), many=True)
    return success_response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def quote_calculate(request):
    """Price a quote from items, extras and a discount; nothing is saved"""
    serializer = QuoteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    quote = calculate_quote(data.get('items', []), data.get('extras', []), data['discount'])
    if data.get('customer_name'):
        quote['customer_name'] = data['customer_name']
    return success_response(quote)
