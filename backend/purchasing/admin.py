from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, GRN, GRNItem


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ['product', 'quantity', 'received_quantity', 'unit_price', 'discount', 'tax', 'total']
    readonly_fields = ['received_quantity', 'total']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier', 'order_date', 'status', 'grand_total', 'created_by', 'created_at']
    list_filter = ['status', 'order_date', 'created_at']
    search_fields = ['po_number', 'supplier__name', 'notes']
    ordering = ['-created_at']
    inlines = [PurchaseOrderItemInline]
    readonly_fields = ['subtotal', 'total_tax', 'total_discount', 'grand_total', 'created_at', 'updated_at']


class GRNItemInline(admin.TabularInline):
    model = GRNItem
    extra = 0
    fields = ['product', 'ordered_quantity', 'received_quantity', 'accepted_quantity', 'rejected_quantity', 'unit_price', 'remarks']


@admin.register(GRN)
class GRNAdmin(admin.ModelAdmin):
    list_display = ['grn_number', 'purchase_order', 'supplier', 'receipt_date', 'status', 'total_amount', 'received_by', 'approved_by']
    list_filter = ['status', 'receipt_date']
    search_fields = ['grn_number', 'purchase_order__po_number', 'supplier__name']
    ordering = ['-created_at']
    inlines = [GRNItemInline]
    readonly_fields = ['total_amount', 'approved_by', 'approved_at', 'created_at', 'updated_at']
