from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


def empty_address():
    return {'street': '', 'city': '', 'state': '', 'zip_code': '', 'country': ''}


class Party(models.Model):
    """Contact fields shared by customers and suppliers"""
    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30)
    address = models.JSONField(default=empty_address, blank=True)
    company = models.CharField(max_length=200, blank=True)
    tax_id = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Customer(Party):
    """Customers"""
    customer_code = models.CharField(max_length=50, unique=True, db_index=True)
    credit_limit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                       validators=[MinValueValidator(Decimal('0.00'))])

    def save(self, *args, **kwargs):
        if self.customer_code:
            self.customer_code = self.customer_code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.customer_code} - {self.name}"

    class Meta:
        db_table = 'customers'
        ordering = ['-created_at', '-id']


class Supplier(Party):
    """Suppliers"""
    supplier_code = models.CharField(max_length=50, unique=True, db_index=True)
    payment_terms = models.CharField(max_length=100, default='Net 30')

    def save(self, *args, **kwargs):
        if self.supplier_code:
            self.supplier_code = self.supplier_code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.supplier_code} - {self.name}"

    class Meta:
        db_table = 'suppliers'
        ordering = ['-created_at', '-id']
