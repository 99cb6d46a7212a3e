from django.contrib import admin
from .models import RawMaterial, Item, ItemMaterial, Extra


class ItemMaterialInline(admin.TabularInline):
    model = ItemMaterial
    extra = 0
    autocomplete_fields = ['raw_material']


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'quantity', 'price', 'updated_at']
    list_filter = ['category']
    search_fields = ['name', 'description']
    ordering = ['name']
    inlines = [ItemMaterialInline]


@admin.register(RawMaterial)
class RawMaterialAdmin(admin.ModelAdmin):
    list_display = ['name', 'width', 'height', 'quantity', 'unit', 'price', 'supplier']
    search_fields = ['name', 'supplier']
    ordering = ['name']


@admin.register(Extra)
class ExtraAdmin(admin.ModelAdmin):
    list_display = ['name', 'price', 'created_at']
    search_fields = ['name']
