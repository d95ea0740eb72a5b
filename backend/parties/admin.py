from django.contrib import admin
from .models import Customer, Supplier


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['customer_code', 'name', 'email', 'phone', 'company', 'credit_limit', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['customer_code', 'name', 'email', 'company']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['supplier_code', 'name', 'email', 'phone', 'payment_terms', 'is_active', 'created_at']
    list_filter = ['is_active', 'payment_terms', 'created_at']
    search_fields = ['supplier_code', 'name', 'email', 'company']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']
