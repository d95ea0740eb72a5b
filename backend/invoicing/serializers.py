from decimal import Decimal

from rest_framework import serializers

from backend.core.fields import ExistingRelatedField
from backend.core.validators import validate_unique_code
from backend.sales.models import SalesOrder
from .models import Invoice, InvoiceItem, Payment, PAYMENT_METHOD_CHOICES
from . import services


class InvoiceItemSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source='product.sku', read_only=True)

    class Meta:
        model = InvoiceItem
        fields = ['id', 'product', 'product_sku', 'description', 'quantity', 'unit_price',
                  'discount', 'tax', 'total']
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    payment_method_display = serializers.CharField(source='get_payment_method_display', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = ['id', 'invoice', 'amount', 'payment_method', 'payment_method_display',
                  'reference', 'notes', 'created_by', 'created_by_username', 'created_at']
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    sales_order = ExistingRelatedField(queryset=SalesOrder.objects.all(), label_404='Sales order')
    order_number = serializers.CharField(source='sales_order.order_number', read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    customer_code = serializers.CharField(source='customer.customer_code', read_only=True)
    invoice_number = serializers.CharField(max_length=50)
    items = InvoiceItemSerializer(many=True, read_only=True)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, required=False, allow_blank=True)
    payment_status_display = serializers.CharField(source='get_payment_status_display', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Invoice
        fields = ['id', 'sales_order', 'invoice_number', 'order_number', 'customer',
                  'customer_name', 'customer_code', 'invoice_date', 'due_date', 'items',
                  'subtotal', 'total_tax', 'total_discount', 'grand_total', 'amount_paid',
                  'balance_due', 'payment_status', 'payment_status_display', 'payment_method',
                  'notes', 'terms', 'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = ['customer', 'subtotal', 'total_tax', 'total_discount', 'grand_total',
                            'balance_due', 'payment_status', 'created_by', 'created_at', 'updated_at']

    def validate_invoice_number(self, value):
        return validate_unique_code(Invoice, 'invoice_number', value, 'Invoice number', instance=self.instance)

    def validate(self, attrs):
        invoice_date = attrs.get('invoice_date')
        due_date = attrs.get('due_date')
        if invoice_date and due_date and due_date < invoice_date:
            raise serializers.ValidationError({'due_date': 'Due date cannot be before the invoice date'})
        return attrs

    def create(self, validated_data):
        created_by = validated_data.pop('created_by', None)
        return services.create_invoice(validated_data, created_by=created_by)


class InvoiceUpdateSerializer(serializers.ModelSerializer):
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, required=False, allow_blank=True)

    class Meta:
        model = Invoice
        fields = services.INVOICE_UPDATE_FIELDS

    def update(self, instance, validated_data):
        return services.update_invoice(instance, validated_data)


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, required=False)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=200, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def to_internal_value(self, data):
        method = data.get('payment_method') if hasattr(data, 'get') else None
        if isinstance(method, str):
            data = dict(data.items())
            data['payment_method'] = method.strip().lower().replace(' ', '_')
        return super().to_internal_value(data)
