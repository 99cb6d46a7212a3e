from django.urls import path
from . import views

urlpatterns = [
    path('dashboard/stats/', views.dashboard_stats, name='dashboard-stats'),
    path('dashboard/category-distribution/', views.category_distribution, name='dashboard-category-distribution'),
    path('dashboard/recent-activity/', views.recent_activity, name='dashboard-recent-activity'),
    path('dashboard/low-stock/', views.low_stock, name='dashboard-low-stock'),
    path('dashboard/sales-summary/', views.sales_summary, name='dashboard-sales-summary'),
]
