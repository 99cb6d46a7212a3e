import django_filters
from django.db.models import Q
from .models import Sale


class SaleFilter(django_filters.FilterSet):
    """Filter for Sale list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Sale.STATUS_CHOICES)
    platform = django_filters.ChoiceFilter(field_name='social_media_platform', choices=Sale.PLATFORM_CHOICES)
    shipping_type = django_filters.ChoiceFilter(choices=Sale.SHIPPING_TYPE_CHOICES)
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    item = django_filters.NumberFilter(field_name='sale_items__item_id', distinct=True)

    class Meta:
        model = Sale
        fields = ['search', 'status', 'platform', 'shipping_type', 'date_from', 'date_to', 'item']

    def filter_search(self, queryset, name, value):
        """Match sale id, customer name, social media username or tracking number"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(sale_id__icontains=value)
            | Q(name__icontains=value)
            | Q(social_media_username__icontains=value)
            | Q(tracking_number__icontains=value)
        )
