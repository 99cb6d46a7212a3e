from rest_framework import serializers
from .models import Sale, SaleItem, SaleExtra


class SaleExtraSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleExtra
        fields = ['id', 'name', 'price']


class SaleItemSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    item_category = serializers.CharField(source='item.category', read_only=True)

    class Meta:
        model = SaleItem
        fields = ['id', 'item', 'item_name', 'item_category', 'quantity']


class SaleSerializer(serializers.ModelSerializer):
    # One id per unit sold: [5, 5, 7] sells two units of item 5 and one of item 7
    items = serializers.ListField(child=serializers.IntegerField(min_value=1), write_only=True, required=False)
    extras = SaleExtraSerializer(many=True, required=False)
    sale_items = SaleItemSerializer(many=True, read_only=True)
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = Sale
        fields = [
            'id', 'sale_id', 'name', 'status', 'social_media_platform', 'social_media_username',
            'tracking_number', 'invoice_required', 'shipping_type', 'local_shipping_option',
            'local_address', 'national_shipping_carrier', 'shipping_description',
            'total_amount', 'discount', 'items', 'sale_items', 'extras',
            'created_by', 'created_by_email', 'created_at', 'updated_at',
        ]
        read_only_fields = ['sale_id', 'created_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Name is required')
        return value.strip()

    def validate(self, attrs):
        shipping_type = attrs.get('shipping_type', getattr(self.instance, 'shipping_type', None))
        if shipping_type == 'local' and attrs.get('national_shipping_carrier'):
            raise serializers.ValidationError({'national_shipping_carrier': ['Only national shipments have a carrier']})
        if shipping_type == 'nacional' and attrs.get('local_shipping_option'):
            raise serializers.ValidationError({'local_shipping_option': ['Only local shipments have a local shipping option']})
        # Changing the shipping type drops the stored field of the other type
        if self.instance is not None and 'shipping_type' in attrs:
            if shipping_type == 'local':
                attrs['national_shipping_carrier'] = ''
            elif shipping_type == 'nacional':
                attrs['local_shipping_option'] = ''
        return attrs

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['items'] = instance.get_item_ids()
        return data


class QuoteItemSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)


class QuoteExtraSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class QuoteSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    items = QuoteItemSerializer(many=True, required=False)
    extras = QuoteExtraSerializer(many=True, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
