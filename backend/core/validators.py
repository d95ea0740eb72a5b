from rest_framework import serializers


def normalize_code(value):
    """Business codes and document numbers are stored trimmed and uppercase"""
    if value is None:
        return value
    return str(value).strip().upper()


def validate_unique_code(model, field, value, label, instance=None):
    """
    Normalize `value` and make sure no other `model` row already uses it.

    Raises:
        serializers.ValidationError: '<label> already exists'
    """
    code = normalize_code(value)
    if not code:
        raise serializers.ValidationError('This field may not be blank.')
    queryset = model.objects.filter(**{field: code})
    if instance is not None and instance.pk:
        queryset = queryset.exclude(pk=instance.pk)
    if queryset.exists():
        raise serializers.ValidationError(f'{label} already exists')
    return code
