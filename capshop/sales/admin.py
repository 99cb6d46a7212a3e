from django.contrib import admin
from .models import Sale, SaleItem, SaleExtra


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    readonly_fields = ['item', 'quantity']
    can_delete = False


class SaleExtraInline(admin.TabularInline):
    model = SaleExtra
    extra = 0


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['sale_id', 'name', 'status', 'social_media_platform', 'shipping_type', 'total_amount', 'created_at']
    list_filter = ['status', 'social_media_platform', 'shipping_type', 'created_at']
    search_fields = ['sale_id', 'name', 'social_media_username', 'tracking_number']
    ordering = ['-created_at']
    readonly_fields = ['sale_id', 'created_by', 'created_at', 'updated_at']
    inlines = [SaleItemInline, SaleExtraInline]
