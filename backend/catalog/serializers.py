from rest_framework import serializers

from backend.core.validators import validate_unique_code
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(max_length=50)
    name = serializers.CharField(min_length=2, max_length=255)
    needs_reorder = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'sku', 'name', 'description', 'category', 'price', 'cost_price',
                  'stock', 'reorder_level', 'unit', 'is_active', 'needs_reorder',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_sku(self, value):
        return validate_unique_code(Product, 'sku', value, 'Product with this SKU', instance=self.instance)


# Fields a product update may change; stock moves only through the stock endpoint
PRODUCT_UPDATE_FIELDS = ['sku', 'name', 'description', 'category', 'price', 'cost_price',
                         'reorder_level', 'unit', 'is_active']


class StockUpdateSerializer(serializers.Serializer):
    OPERATION_CHOICES = ['add', 'subtract', 'set']

    quantity = serializers.IntegerField(min_value=0)
    operation = serializers.ChoiceField(choices=OPERATION_CHOICES, default='set')
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
