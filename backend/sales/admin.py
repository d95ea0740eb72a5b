from django.contrib import admin
from .models import SalesOrder, SalesOrderItem


class SalesOrderItemInline(admin.TabularInline):
    model = SalesOrderItem
    extra = 0
    readonly_fields = ['total']


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'order_date', 'status', 'grand_total', 'created_by', 'created_at']
    list_filter = ['status', 'order_date', 'created_at']
    search_fields = ['order_number', 'customer__name', 'customer__customer_code']
    ordering = ['-created_at']
    readonly_fields = ['subtotal', 'total_tax', 'total_discount', 'grand_total', 'stock_deducted', 'created_at', 'updated_at']
    inlines = [SalesOrderItemInline]
