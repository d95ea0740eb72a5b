from rest_framework import serializers

from backend.core.validators import validate_unique_code
from .models import Customer, Supplier, empty_address


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(required=False, allow_blank=True, default='')
    city = serializers.CharField(required=False, allow_blank=True, default='')
    state = serializers.CharField(required=False, allow_blank=True, default='')
    zip_code = serializers.CharField(required=False, allow_blank=True, default='')
    country = serializers.CharField(required=False, allow_blank=True, default='')


class PartySerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=2, max_length=200)
    email = serializers.EmailField()
    address = AddressSerializer(required=False)

    def validate_email(self, value):
        return value.strip().lower()

    def create(self, validated_data):
        address = empty_address()
        address.update(validated_data.pop('address', None) or {})
        return self.Meta.model.objects.create(address=address, **validated_data)

    def update(self, instance, validated_data):
        if 'address' in validated_data:
            address = empty_address()
            address.update(instance.address or {})
            address.update(validated_data.pop('address') or {})
            instance.address = address
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance

    def to_representation(self, instance):
        data = super().to_representation(instance)
        address = empty_address()
        address.update(instance.address or {})
        data['address'] = address
        return data


class CustomerSerializer(PartySerializer):
    customer_code = serializers.CharField(max_length=50)

    class Meta:
        model = Customer
        fields = ['id', 'customer_code', 'name', 'email', 'phone', 'address', 'company',
                  'tax_id', 'credit_limit', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_customer_code(self, value):
        return validate_unique_code(Customer, 'customer_code', value,
                                    'Customer with this code', instance=self.instance)


class SupplierSerializer(PartySerializer):
    supplier_code = serializers.CharField(max_length=50)

    class Meta:
        model = Supplier
        fields = ['id', 'supplier_code', 'name', 'email', 'phone', 'address', 'company',
                  'tax_id', 'payment_terms', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_supplier_code(self, value):
        return validate_unique_code(Supplier, 'supplier_code', value,
                                    'Supplier with this code', instance=self.instance)


CUSTOMER_UPDATE_FIELDS = ['customer_code', 'name', 'email', 'phone', 'address', 'company',
                          'tax_id', 'credit_limit', 'is_active']
SUPPLIER_UPDATE_FIELDS = ['supplier_code', 'name', 'email', 'phone', 'address', 'company',
                          'tax_id', 'payment_terms', 'is_active']
