from django.urls import path
from . import views

urlpatterns = [
    path('dashboard/overview/', views.dashboard_overview, name='dashboard-overview'),
    path('dashboard/sales-trends/', views.sales_trends, name='dashboard-sales-trends'),
    path('dashboard/top-products/', views.top_products, name='dashboard-top-products'),
    path('dashboard/top-customers/', views.top_customers, name='dashboard-top-customers'),
    path('dashboard/recent-activities/', views.recent_activities, name='dashboard-recent-activities'),
    path('dashboard/inventory-alerts/', views.inventory_alerts, name='dashboard-inventory-alerts'),
]
