from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_status,
    grn_list_create, grn_detail, grn_approve, grn_reject,
)

urlpatterns = [
    # Purchase order endpoints
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/status/', purchase_order_status, name='purchase-order-status'),

    # GRN endpoints
    path('grns/', grn_list_create, name='grn-list-create'),
    path('grns/<int:pk>/', grn_detail, name='grn-detail'),
    path('grns/<int:pk>/approve/', grn_approve, name='grn-approve'),
    path('grns/<int:pk>/reject/', grn_reject, name='grn-reject'),
]
