from django.contrib import admin
from .models import Invoice, InvoiceItem, Payment


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ['total']


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ['created_by', 'created_at']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'customer', 'invoice_date', 'due_date', 'grand_total', 'amount_paid', 'balance_due', 'payment_status']
    list_filter = ['payment_status', 'payment_method', 'invoice_date', 'due_date']
    search_fields = ['invoice_number', 'customer__name', 'sales_order__order_number']
    ordering = ['-created_at']
    inlines = [InvoiceItemInline, PaymentInline]
    readonly_fields = ['subtotal', 'total_tax', 'total_discount', 'grand_total', 'balance_due', 'payment_status', 'created_at', 'updated_at']


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['invoice', 'amount', 'payment_method', 'reference', 'created_by', 'created_at']
    list_filter = ['payment_method', 'created_at']
    search_fields = ['invoice__invoice_number', 'reference']
    ordering = ['-created_at']
