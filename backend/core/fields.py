from rest_framework import serializers
from rest_framework.exceptions import NotFound


class ExistingRelatedField(serializers.PrimaryKeyRelatedField):
    """
    Primary key reference that answers 404 when the target does not exist.

    Documents reference customers, suppliers, products and orders; a missing
    reference is reported as "<Label> not found" instead of a validation error.
    """

    def __init__(self, **kwargs):
        self.not_found_label = kwargs.pop('label_404', None)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        queryset = self.get_queryset()
        try:
            if isinstance(data, bool):
                raise TypeError
            return queryset.get(pk=int(data))
        except (TypeError, ValueError):
            self.fail('incorrect_type', data_type=type(data).__name__)
        except queryset.model.DoesNotExist:
            label = self.not_found_label or queryset.model._meta.verbose_name.title()
            raise NotFound(f'{label} not found')
