from django.urls import path
from . import views

urlpatterns = [
    path('sales/', views.sale_list_create, name='sale-list-create'),
    path('sales/status/<str:sale_status>/', views.sale_by_status, name='sale-by-status'),
    path('sales/<int:pk>/', views.sale_detail, name='sale-detail'),

    path('quotes/calculate/', views.quote_calculate, name='quote-calculate'),
]
