from django.contrib import admin
from .models import OrderMaterial, OrderMaterialGroup, OrderDesign


class OrderMaterialGroupInline(admin.TabularInline):
    model = OrderMaterialGroup
    extra = 0


@admin.register(OrderMaterial)
class OrderMaterialAdmin(admin.ModelAdmin):
    list_display = ['id', 'distributor', 'status', 'carrier', 'tracking_number', 'inventory_processed', 'created_at']
    list_filter = ['status', 'carrier', 'inventory_processed']
    search_fields = ['distributor', 'tracking_number']
    readonly_fields = ['inventory_processed', 'created_by', 'created_at', 'updated_at']
    inlines = [OrderMaterialGroupInline]


@admin.register(OrderDesign)
class OrderDesignAdmin(admin.ModelAdmin):
    list_display = ['group', 'raw_material', 'width', 'height']
    search_fields = ['raw_material__name']
