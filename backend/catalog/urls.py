from django.urls import path
from .views import product_list_create, product_detail, product_stock_update, low_stock_products

urlpatterns = [
    path('products/', product_list_create, name='product-list-create'),
    path('products/alerts/low-stock/', low_stock_products, name='product-low-stock'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/stock/', product_stock_update, name='product-stock-update'),
]
