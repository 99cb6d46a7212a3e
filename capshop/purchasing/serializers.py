from django.db import transaction
from rest_framework import serializers
from .models import OrderMaterial, OrderMaterialGroup, OrderDesign


class OrderDesignSerializer(serializers.ModelSerializer):
    raw_material_name = serializers.CharField(source='raw_material.name', read_only=True)

    class Meta:
        model = OrderDesign
        fields = ['id', 'raw_material', 'raw_material_name', 'height', 'width']


class OrderMaterialGroupSerializer(serializers.ModelSerializer):
    designs = OrderDesignSerializer(many=True, allow_empty=False)

    class Meta:
        model = OrderMaterialGroup
        fields = ['id', 'quantity', 'designs']


class OrderMaterialSerializer(serializers.ModelSerializer):
    materials = OrderMaterialGroupSerializer(source='groups', many=True, required=False, allow_empty=False)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = OrderMaterial
        fields = [
            'id', 'distributor', 'description', 'status', 'status_display', 'tracking_number',
            'carrier', 'estimated_delivery', 'inventory_processed', 'materials',
            'created_by', 'created_by_email', 'created_at', 'updated_at',
        ]
        read_only_fields = ['inventory_processed', 'created_by', 'created_at', 'updated_at']

    def validate_distributor(self, value):
        if not value.strip():
            raise serializers.ValidationError('Distributor is required')
        return value.strip()

    def validate(self, attrs):
        if self.instance is None and not attrs.get('groups'):
            raise serializers.ValidationError({'materials': ['At least one material group is required']})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        groups_data = validated_data.pop('groups')
        order = OrderMaterial.objects.create(**validated_data)
        self._create_groups(order, groups_data)
        return order

    @transaction.atomic
    def update(self, instance, validated_data):
        groups_data = validated_data.pop('groups', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        # Groups are replaced only when the request carries materials
        if groups_data is not None:
            instance.groups.all().delete()
            self._create_groups(instance, groups_data)
        return instance

    def _create_groups(self, order, groups_data):
        for group_data in groups_data:
            designs_data = group_data.pop('designs')
            group = OrderMaterialGroup.objects.create(order=order, **group_data)
            OrderDesign.objects.bulk_create([
                OrderDesign(group=group, **design_data) for design_data in designs_data
            ])


class DeliveryStatusSerializer(serializers.Serializer):
    isDelivered = serializers.BooleanField()
