from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from backend.catalog.models import Product
from backend.core.calculations import derive_payment_status, to_money
from backend.core.models import User, DocumentTotals, DocumentLine
from backend.parties.models import Customer
from backend.sales.models import SalesOrder

DEFAULT_TERMS = 'Payment due within 30 days'

PAYMENT_METHOD_CHOICES = [
    ('cash', 'Cash'),
    ('credit_card', 'Credit Card'),
    ('bank_transfer', 'Bank Transfer'),
    ('check', 'Check'),
    ('other', 'Other'),
]


class Invoice(DocumentTotals):
    """Customer invoice raised from a sales order"""
    PAYMENT_UNPAID = 'unpaid'
    PAYMENT_PARTIAL = 'partially_paid'
    PAYMENT_PAID = 'paid'
    PAYMENT_OVERDUE = 'overdue'

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_UNPAID, 'Unpaid'),
        (PAYMENT_PARTIAL, 'Partially Paid'),
        (PAYMENT_PAID, 'Paid'),
        (PAYMENT_OVERDUE, 'Overdue'),
    ]

    OPEN_STATUSES = (PAYMENT_UNPAID, PAYMENT_PARTIAL, PAYMENT_OVERDUE)

    invoice_number = models.CharField(max_length=50, unique=True, db_index=True)
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.PROTECT, related_name='invoices')
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='invoices')
    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField()
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    balance_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_UNPAID, db_index=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True)
    notes = models.TextField(blank=True)
    terms = models.TextField(default=DEFAULT_TERMS, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_paid(self):
        return self.payment_status == self.PAYMENT_PAID

    def refresh_payment_state(self, today=None):
        """Derive balance due and payment status from the amounts and due date"""
        today = today or timezone.localdate()
        self.balance_due = to_money(self.grand_total) - to_money(self.amount_paid)
        self.payment_status = derive_payment_status(self.amount_paid, self.grand_total, self.due_date, today)
        return self.payment_status

    def save(self, *args, **kwargs):
        if self.invoice_number:
            self.invoice_number = self.invoice_number.strip().upper()
        self.refresh_payment_state()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'balance_due', 'payment_status'}
        super().save(*args, **kwargs)

    def __str__(self):
        return self.invoice_number

    class Meta:
        db_table = 'invoices'
        ordering = ['-created_at', '-id']


class InvoiceItem(DocumentLine):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='invoice_items')
    description = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return f"{self.invoice.invoice_number} - {self.description} x {self.quantity}"

    class Meta:
        db_table = 'invoice_items'
        ordering = ['id']


class Payment(models.Model):
    """Payments recorded against an invoice"""
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    reference = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.invoice.invoice_number} - {self.amount}"

    class Meta:
        db_table = 'payments'
        ordering = ['-created_at', '-id']
