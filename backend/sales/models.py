from django.db import models
from django.utils import timezone

from backend.catalog.models import Product
from backend.core.models import User, DocumentTotals, DocumentLine
from backend.parties.models import Customer


class SalesOrder(DocumentTotals):
    """Customer order; stock leaves the warehouse when it ships"""
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PROCESSING = 'processing'
    STATUS_SHIPPED = 'shipped'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    TERMINAL_STATUSES = (STATUS_DELIVERED, STATUS_CANCELLED)
    SHIPPING_STATUSES = (STATUS_SHIPPED, STATUS_DELIVERED)
    OPEN_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_PROCESSING)

    order_number = models.CharField(max_length=50, unique=True, db_index=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='sales_orders')
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    stock_deducted = models.BooleanField(default=False)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='sales_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def save(self, *args, **kwargs):
        if self.order_number:
            self.order_number = self.order_number.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.order_number

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-created_at', '-id']


class SalesOrderItem(DocumentLine):
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sales_order_items')

    def __str__(self):
        return f"{self.sales_order.order_number} - {self.product.name} x {self.quantity}"

    class Meta:
        db_table = 'sales_order_items'
        ordering = ['id']
