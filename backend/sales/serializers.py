from decimal import Decimal

from rest_framework import serializers

from backend.catalog.models import Product
from backend.core.fields import ExistingRelatedField
from backend.core.validators import validate_unique_code
from backend.parties.models import Customer
from .models import SalesOrder, SalesOrderItem
from . import services


class SalesOrderItemSerializer(serializers.ModelSerializer):
    product = ExistingRelatedField(queryset=Product.objects.all(), label_404='Product')
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00'))
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00'))

    class Meta:
        model = SalesOrderItem
        fields = ['id', 'product', 'product_name', 'product_sku', 'quantity', 'unit_price',
                  'discount', 'tax', 'total']
        read_only_fields = ['total']


class SalesOrderSerializer(serializers.ModelSerializer):
    customer = ExistingRelatedField(queryset=Customer.objects.all(), label_404='Customer')
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    customer_code = serializers.CharField(source='customer.customer_code', read_only=True)
    items = SalesOrderItemSerializer(many=True)
    order_number = serializers.CharField(max_length=50)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = SalesOrder
        # References first so a missing customer/product answers 404
        fields = ['id', 'customer', 'items', 'order_number', 'customer_name', 'customer_code',
                  'order_date', 'expected_delivery_date', 'subtotal', 'total_tax',
                  'total_discount', 'grand_total', 'status', 'status_display', 'notes',
                  'stock_deducted', 'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = ['subtotal', 'total_tax', 'total_discount', 'grand_total', 'status',
                            'stock_deducted', 'created_by', 'created_at', 'updated_at']

    def validate_order_number(self, value):
        return validate_unique_code(SalesOrder, 'order_number', value, 'Order number', instance=self.instance)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Sales order must have at least one item')
        return value

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        created_by = validated_data.pop('created_by', None)
        return services.create_sales_order(validated_data, items_data, created_by=created_by)

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        return services.update_sales_order(instance, validated_data, items_data)
