from decimal import Decimal

from rest_framework import serializers

from backend.catalog.models import Product
from backend.core.fields import ExistingRelatedField
from backend.core.validators import validate_unique_code
from backend.parties.models import Supplier
from .models import PurchaseOrder, PurchaseOrderItem, GRN, GRNItem
from . import services


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    product = ExistingRelatedField(queryset=Product.objects.all(), label_404='Product')
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00'))
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00'))
    pending_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = ['id', 'product', 'product_name', 'product_sku', 'quantity', 'received_quantity',
                  'pending_quantity', 'unit_price', 'discount', 'tax', 'total']
        read_only_fields = ['received_quantity', 'total']


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier = ExistingRelatedField(queryset=Supplier.objects.all(), label_404='Supplier')
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    supplier_code = serializers.CharField(source='supplier.supplier_code', read_only=True)
    items = PurchaseOrderItemSerializer(many=True)
    po_number = serializers.CharField(max_length=50)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'supplier', 'items', 'po_number', 'supplier_name', 'supplier_code',
                  'order_date', 'expected_delivery_date', 'subtotal', 'total_tax',
                  'total_discount', 'grand_total', 'status', 'status_display', 'notes',
                  'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = ['subtotal', 'total_tax', 'total_discount', 'grand_total', 'status',
                            'created_by', 'created_at', 'updated_at']

    def validate_po_number(self, value):
        return validate_unique_code(PurchaseOrder, 'po_number', value, 'PO number', instance=self.instance)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Purchase order must have at least one item')
        return value

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        created_by = validated_data.pop('created_by', None)
        return services.create_purchase_order(validated_data, items_data, created_by=created_by)

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        return services.update_purchase_order(instance, validated_data, items_data)


class GRNItemSerializer(serializers.ModelSerializer):
    product = ExistingRelatedField(queryset=Product.objects.all(), label_404='Product')
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    received_quantity = serializers.IntegerField(min_value=0)
    accepted_quantity = serializers.IntegerField(min_value=0)
    rejected_quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True)
    remarks = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')

    class Meta:
        model = GRNItem
        fields = ['id', 'product', 'product_name', 'product_sku', 'ordered_quantity',
                  'received_quantity', 'accepted_quantity', 'rejected_quantity',
                  'unit_price', 'remarks']
        read_only_fields = ['ordered_quantity']

    def validate(self, attrs):
        accepted = attrs.get('accepted_quantity', 0)
        rejected = attrs.get('rejected_quantity', 0)
        if accepted + rejected > attrs.get('received_quantity', 0):
            raise serializers.ValidationError(
                'Accepted and rejected quantities cannot exceed the received quantity'
            )
        return attrs


class GRNSerializer(serializers.ModelSerializer):
    purchase_order = ExistingRelatedField(queryset=PurchaseOrder.objects.all(), label_404='Purchase order')
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    items = GRNItemSerializer(many=True)
    grn_number = serializers.CharField(max_length=50)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    received_by_username = serializers.CharField(source='received_by.username', read_only=True, default=None)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True, default=None)

    class Meta:
        model = GRN
        fields = ['id', 'purchase_order', 'grn_number', 'items', 'po_number', 'supplier',
                  'supplier_name', 'receipt_date', 'total_amount', 'status', 'status_display',
                  'notes', 'received_by', 'received_by_username', 'approved_by',
                  'approved_by_username', 'approved_at', 'created_at', 'updated_at']
        read_only_fields = ['supplier', 'total_amount', 'status', 'received_by', 'approved_by',
                            'approved_at', 'created_at', 'updated_at']

    def to_internal_value(self, data):
        # Purchase order, then GRN number, before any line product is looked up
        if hasattr(data, 'get'):
            for name, check in (('purchase_order', None), ('grn_number', self.validate_grn_number)):
                if data.get(name) is None:
                    continue
                try:
                    value = self.fields[name].run_validation(data.get(name))
                    if check is not None:
                        check(value)
                except serializers.ValidationError as exc:
                    raise serializers.ValidationError({name: exc.detail})
        return super().to_internal_value(data)

    def validate_grn_number(self, value):
        return validate_unique_code(GRN, 'grn_number', value, 'GRN number', instance=self.instance)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('GRN must have at least one item')
        return value

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        received_by = validated_data.pop('received_by', None)
        return services.create_grn(validated_data, items_data, received_by=received_by)


class GRNUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = GRN
        fields = services.GRN_UPDATE_FIELDS

    def update(self, instance, validated_data):
        return services.update_grn(instance, validated_data)
