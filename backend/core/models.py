from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models

from .calculations import apply_document_totals, compute_line_total


class User(AbstractUser):
    """Extended user model carrying the application role"""
    ROLE_ADMIN = 'Admin'
    ROLE_SALES = 'Sales'
    ROLE_PURCHASE = 'Purchase'
    ROLE_INVENTORY = 'Inventory'

    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_SALES, 'Sales'),
        (ROLE_PURCHASE, 'Purchase'),
        (ROLE_INVENTORY, 'Inventory'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_SALES)
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def effective_role(self):
        """Superusers act as Admin regardless of the stored role"""
        if self.is_superuser:
            return self.ROLE_ADMIN
        return self.role

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('stock_adjust', 'Stock Adjustment'),
        ('stock_receive', 'Stock Received (GRN)'),
        ('stock_ship', 'Stock Shipped (Sales Order)'),
        ('grn_approve', 'GRN Approved'),
        ('payment_add', 'Payment Added'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Business reference (e.g., SKU, order number, invoice number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name} {self.object_reference or self.object_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_6a1f0c_idx'),
            models.Index(fields=['action'], name='audit_logs_action_3b9e2d_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_7c4a81_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__e52f93_idx'),
        ]


class DocumentTotals(models.Model):
    """Totals carried by orders and invoices, derived from their lines"""
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    def recalculate_totals(self, items=None):
        """Recompute totals from `items` (defaults to the saved lines)"""
        if items is None:
            items = list(self.items.all())
        return apply_document_totals(self, items)

    class Meta:
        abstract = True


class DocumentLine(models.Model):
    """Priced line of an order or invoice"""
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    def save(self, *args, **kwargs):
        self.total = compute_line_total(self.quantity, self.unit_price, self.discount)
        super().save(*args, **kwargs)

    class Meta:
        abstract = True
