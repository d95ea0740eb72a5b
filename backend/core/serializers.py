from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, AuditLog
from .permissions import ADMIN, is_admin


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role',
                  'is_active', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True, required=False)
    email = serializers.EmailField()

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone', 'role']

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('User with this email already exists')
        return value.lower()

    def validate_role(self, value):
        request = self.context.get('request')
        if value == ADMIN and not (request and is_admin(request.user)):
            raise serializers.ValidationError('Only an administrator can create Admin users')
        return value

    def validate(self, attrs):
        confirm = attrs.get('password_confirm')
        if confirm is not None and attrs['password'] != confirm:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm', None)
        password = validated_data.pop('password')
        user = User(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own profile"""
    password = serializers.CharField(write_only=True, required=False, validators=[validate_password])

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email', 'phone', 'password']

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError('User with this email already exists')
        return value.lower()

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class AuditLogSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id',
                  'object_reference', 'changes', 'ip_address', 'created_at']

    def get_user(self, obj):
        if obj.user is None:
            return None
        return {'id': obj.user.id, 'username': obj.user.username, 'role': obj.user.role}


class StatusChangeSerializer(serializers.Serializer):
    """Status change body; accepts keys or display labels ("Partially Received")"""
    status = serializers.ChoiceField(choices=[])

    def __init__(self, *args, choices=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['status'].choices = choices or []

    def to_internal_value(self, data):
        status = data.get('status') if hasattr(data, 'get') else None
        if isinstance(status, str):
            data = {'status': status.strip().lower().replace(' ', '_')}
        return super().to_internal_value(data)
