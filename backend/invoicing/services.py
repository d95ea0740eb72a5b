"""Invoice write paths: creation from a sales order and payments"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from backend.core.calculations import compute_line_total, to_money
from backend.core.exceptions import BusinessRuleError
from backend.sales.models import SalesOrder
from .models import Invoice, InvoiceItem, Payment

logger = logging.getLogger(__name__)

INVOICE_UPDATE_FIELDS = ['due_date', 'payment_method', 'notes', 'terms']


def create_invoice(validated_data, created_by=None):
    """
    Raise an invoice for a sales order.

    Lines are copied from the order with the product name as description and
    the customer is taken from the order. An optional opening `amount_paid`
    is recorded as a first payment.
    """
    opening_payment = to_money(validated_data.pop('amount_paid', None) or Decimal('0.00'))
    sales_order = validated_data['sales_order']

    with transaction.atomic():
        sales_order = SalesOrder.objects.select_related('customer').get(pk=sales_order.pk)
        if sales_order.status == SalesOrder.STATUS_CANCELLED:
            raise BusinessRuleError('Cannot invoice a cancelled sales order')

        order_lines = list(sales_order.items.select_related('product'))
        if not order_lines:
            raise BusinessRuleError('Sales order has no items to invoice')

        invoice = Invoice(
            customer=sales_order.customer,
            created_by=created_by,
            **validated_data
        )
        lines = []
        for line in order_lines:
            lines.append(InvoiceItem(
                product=line.product,
                description=line.product.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                tax=line.tax,
                total=compute_line_total(line.quantity, line.unit_price, line.discount),
            ))
        invoice.recalculate_totals(lines)

        if opening_payment < 0:
            raise BusinessRuleError('Amount paid cannot be negative')
        if opening_payment > invoice.grand_total:
            raise BusinessRuleError('Payment exceeds balance due')
        invoice.amount_paid = opening_payment
        invoice.save()

        for line in lines:
            line.invoice = invoice
        InvoiceItem.objects.bulk_create(lines)

        if opening_payment > 0:
            Payment.objects.create(
                invoice=invoice,
                amount=opening_payment,
                payment_method=invoice.payment_method or 'cash',
                created_by=created_by,
            )

    logger.info(
        f"Created invoice {invoice.invoice_number} for {sales_order.order_number}: "
        f"total {invoice.grand_total}, status {invoice.payment_status}"
    )
    return invoice


def update_invoice(invoice, validated_data):
    if invoice.is_paid:
        raise BusinessRuleError('Cannot update paid invoice')
    for field, value in validated_data.items():
        setattr(invoice, field, value)
    invoice.save()
    return invoice


def record_payment(invoice_id, amount, payment_method=None, reference='', notes='', created_by=None):
    """
    Add a payment to an invoice.

    The invoice row is locked while the amount is checked against the balance
    due, so concurrent payments cannot push it past the grand total.

    Returns:
        (invoice, payment)
    """
    amount = to_money(amount)
    if amount <= 0:
        raise BusinessRuleError('Payment amount must be greater than zero')

    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
        if invoice.is_paid:
            raise BusinessRuleError('Invoice is already paid')

        balance_due = to_money(invoice.grand_total) - to_money(invoice.amount_paid)
        if amount > balance_due:
            raise BusinessRuleError('Payment exceeds balance due')

        previous_status = invoice.payment_status
        invoice.amount_paid = to_money(invoice.amount_paid) + amount
        if payment_method:
            invoice.payment_method = payment_method
        invoice.save()

        payment = Payment.objects.create(
            invoice=invoice,
            amount=amount,
            payment_method=payment_method or invoice.payment_method or 'cash',
            reference=reference or '',
            notes=notes or '',
            created_by=created_by,
        )

    logger.info(
        f"Payment {amount} on {invoice.invoice_number}: {previous_status} -> {invoice.payment_status}, "
        f"balance {invoice.balance_due}"
    )
    return invoice, payment


def delete_invoice(invoice_id):
    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
        if invoice.amount_paid > 0:
            raise BusinessRuleError('Cannot delete invoice with payments')
        invoice_number = invoice.invoice_number
        invoice.delete()
    logger.info(f"Invoice {invoice_number} deleted")
    return invoice_number


def refresh_open_invoices(today=None):
    """
    Re-derive the stored payment status of every open invoice.

    Returns:
        number of invoices whose status changed
    """
    today = today or timezone.localdate()
    changed = 0
    for invoice in Invoice.objects.filter(payment_status__in=Invoice.OPEN_STATUSES).iterator():
        previous_status = invoice.payment_status
        invoice.refresh_payment_state(today)
        if invoice.payment_status != previous_status:
            Invoice.objects.filter(pk=invoice.pk).update(
                payment_status=invoice.payment_status,
                balance_due=invoice.balance_due,
            )
            changed += 1
            logger.info(f"Invoice {invoice.invoice_number}: {previous_status} -> {invoice.payment_status}")
    return changed
