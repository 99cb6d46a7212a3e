import django_filters
from django.db.models import Q
from .models import Item, RawMaterial


class ItemFilter(django_filters.FilterSet):
    """Filter for Item list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.ChoiceFilter(choices=Item.CATEGORY_CHOICES)
    min_quantity = django_filters.NumberFilter(field_name='quantity', lookup_expr='gte')
    max_quantity = django_filters.NumberFilter(field_name='quantity', lookup_expr='lte')
    material = django_filters.NumberFilter(field_name='item_materials__raw_material_id', distinct=True)

    class Meta:
        model = Item
        fields = ['search', 'category', 'min_quantity', 'max_quantity', 'material']

    def filter_search(self, queryset, name, value):
        """Match every word against name or description"""
        value = (value or '').strip()
        if not value:
            return queryset
        for word in value.split():
            queryset = queryset.filter(Q(name__icontains=word) | Q(description__icontains=word))
        return queryset


class RawMaterialFilter(django_filters.FilterSet):
    """Filter for RawMaterial list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    supplier = django_filters.CharFilter(field_name='supplier', lookup_expr='icontains')
    max_quantity = django_filters.NumberFilter(field_name='quantity', lookup_expr='lte')

    class Meta:
        model = RawMaterial
        fields = ['search', 'supplier', 'max_quantity']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(description__icontains=value) | Q(supplier__icontains=value)
        )
