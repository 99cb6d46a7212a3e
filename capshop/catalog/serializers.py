from django.db import transaction
from rest_framework import serializers
from .models import RawMaterial, Item, ItemMaterial, Extra


class RawMaterialSerializer(serializers.ModelSerializer):
    class Meta:
        model = RawMaterial
        fields = ['id', 'name', 'description', 'width', 'height', 'quantity', 'unit',
                  'price', 'supplier', 'image_url', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class RawMaterialSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = RawMaterial
        fields = ['id', 'name', 'width', 'height', 'unit']


class ItemSerializer(serializers.ModelSerializer):
    materials = serializers.PrimaryKeyRelatedField(
        many=True, queryset=RawMaterial.objects.all(), required=False
    )
    material_details = RawMaterialSummarySerializer(source='materials', many=True, read_only=True)
    category_display = serializers.CharField(source='get_category_display', read_only=True)

    class Meta:
        model = Item
        fields = ['id', 'name', 'category', 'category_display', 'description', 'quantity', 'price',
                  'materials', 'material_details', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_materials(self, value):
        seen = set()
        unique = []
        for material in value:
            if material.pk not in seen:
                seen.add(material.pk)
                unique.append(material)
        return unique

    @transaction.atomic
    def create(self, validated_data):
        materials = validated_data.pop('materials', [])
        item = Item.objects.create(**validated_data)
        self._set_materials(item, materials)
        return item

    @transaction.atomic
    def update(self, instance, validated_data):
        materials = validated_data.pop('materials', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        # Materials are replaced only when the request carries them
        if materials is not None:
            instance.item_materials.all().delete()
            self._set_materials(instance, materials)
        return instance

    def _set_materials(self, item, materials):
        ItemMaterial.objects.bulk_create([
            ItemMaterial(item=item, raw_material=material) for material in materials
        ])


class ItemQuantityReduceSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class ExtraSerializer(serializers.ModelSerializer):
    class Meta:
        model = Extra
        fields = ['id', 'name', 'price', 'created_at']
        read_only_fields = ['created_at']
