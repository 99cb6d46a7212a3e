from django.urls import path
from . import views

urlpatterns = [
    path('order-materials/', views.order_material_list_create, name='order-material-list-create'),
    path('order-materials/status/<str:order_status>/', views.order_material_by_status, name='order-material-by-status'),
    path('order-materials/<int:pk>/', views.order_material_detail, name='order-material-detail'),
    path('order-materials/<int:pk>/check-delivery/', views.order_material_check_delivery, name='order-material-check-delivery'),
    path('order-materials/<int:pk>/update-delivery-status/', views.order_material_update_delivery_status, name='order-material-update-delivery-status'),
    path('order-materials/<int:pk>/process-inventory/', views.order_material_process_inventory, name='order-material-process-inventory'),
]
