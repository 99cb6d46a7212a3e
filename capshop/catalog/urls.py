from django.urls import path
from . import views

urlpatterns = [
    # Item endpoints
    path('items/', views.item_list_create, name='item-list-create'),
    path('items/low-stock/', views.item_low_stock, name='item-low-stock-default'),
    path('items/low-stock/<int:threshold>/', views.item_low_stock, name='item-low-stock'),
    path('items/<int:pk>/', views.item_detail, name='item-detail'),
    path('items/<int:pk>/reduce-quantity/', views.item_reduce_quantity, name='item-reduce-quantity'),

    # Raw material endpoints
    path('raw-materials/', views.raw_material_list_create, name='raw-material-list-create'),
    path('raw-materials/low-stock/', views.raw_material_low_stock, name='raw-material-low-stock-default'),
    path('raw-materials/low-stock/<int:threshold>/', views.raw_material_low_stock, name='raw-material-low-stock'),
    path('raw-materials/<int:pk>/', views.raw_material_detail, name='raw-material-detail'),

    # Extra endpoints
    path('extras/', views.extra_list_create, name='extra-list-create'),
]
