"""
URL configuration for the capshop project.

Every API module mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Capshop Inventory Admin Panel"
admin.site.site_title = "Capshop Inventory Admin Portal"
admin.site.index_title = "Inventory, orders and sales"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('capshop.core.urls')),
    path('api/v1/', include('capshop.catalog.urls')),
    path('api/v1/', include('capshop.purchasing.urls')),
    path('api/v1/', include('capshop.sales.urls')),
    path('api/v1/', include('capshop.reports.urls')),
]
