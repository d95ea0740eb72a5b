from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from backend.catalog.models import Product
from backend.core.calculations import compute_receipt_total, derive_receipt_status
from backend.core.models import User, DocumentTotals, DocumentLine
from backend.parties.models import Supplier


class PurchaseOrder(DocumentTotals):
    """Order placed with a supplier, received through GRNs"""
    STATUS_DRAFT = 'draft'
    STATUS_SENT = 'sent'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PARTIALLY_RECEIVED = 'partially_received'
    STATUS_RECEIVED = 'received'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SENT, 'Sent'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_PARTIALLY_RECEIVED, 'Partially Received'),
        (STATUS_RECEIVED, 'Received'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    TERMINAL_STATUSES = (STATUS_RECEIVED, STATUS_CANCELLED)
    RECEIPT_STATUSES = (STATUS_PARTIALLY_RECEIVED, STATUS_RECEIVED)
    OPEN_STATUSES = (STATUS_DRAFT, STATUS_SENT, STATUS_CONFIRMED)

    po_number = models.CharField(max_length=50, unique=True, db_index=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def has_receipts(self):
        return any(item.received_quantity > 0 for item in self.items.all())

    def refresh_receipt_status(self):
        """Re-derive status from line receipts; Confirmed when nothing is received"""
        lines = [(item.quantity, item.received_quantity) for item in self.items.all()]
        derived = derive_receipt_status(lines)
        if derived is None and self.status in self.RECEIPT_STATUSES:
            derived = self.STATUS_CONFIRMED
        if derived is not None:
            self.status = derived
        return self.status

    def save(self, *args, **kwargs):
        if self.po_number:
            self.po_number = self.po_number.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.po_number

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at', '-id']


class PurchaseOrderItem(DocumentLine):
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='purchase_order_items')
    received_quantity = models.PositiveIntegerField(default=0)

    @property
    def pending_quantity(self):
        return max(0, self.quantity - self.received_quantity)

    def __str__(self):
        return f"{self.purchase_order.po_number} - {self.product.name} x {self.quantity}"

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']


class GRN(models.Model):
    """Goods received note against a purchase order"""
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    grn_number = models.CharField(max_length=50, unique=True, db_index=True)
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.PROTECT, related_name='grns')
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='grns')
    receipt_date = models.DateField(default=timezone.localdate)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    received_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='received_grns')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_grns')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_pending(self):
        return self.status == self.STATUS_PENDING

    def recalculate_total(self, items=None):
        if items is None:
            items = list(self.items.all())
        self.total_amount = compute_receipt_total(items)
        return self.total_amount

    def save(self, *args, **kwargs):
        if self.grn_number:
            self.grn_number = self.grn_number.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.grn_number

    class Meta:
        db_table = 'grns'
        ordering = ['-created_at', '-id']
        verbose_name = 'GRN'
        verbose_name_plural = 'GRNs'


class GRNItem(models.Model):
    grn = models.ForeignKey(GRN, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='grn_items')
    ordered_quantity = models.PositiveIntegerField(default=0)
    received_quantity = models.PositiveIntegerField()
    accepted_quantity = models.PositiveIntegerField()
    rejected_quantity = models.PositiveIntegerField(default=0)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    remarks = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return f"{self.grn.grn_number} - {self.product.name} ({self.accepted_quantity} accepted)"

    class Meta:
        db_table = 'grn_items'
        ordering = ['id']
