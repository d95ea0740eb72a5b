"""
Pure derivations for order and invoice documents.

These run explicitly before every write of a sales order, purchase order or
invoice so that stored totals and statuses always reflect the line items.
"""
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal('0.01')

PAYMENT_UNPAID = 'unpaid'
PAYMENT_PARTIAL = 'partially_paid'
PAYMENT_PAID = 'paid'
PAYMENT_OVERDUE = 'overdue'


def to_money(value):
    """Coerce a number/string into a 2dp Decimal"""
    if value is None:
        value = Decimal('0')
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def compute_line_total(quantity, unit_price, discount=0):
    """Line total = quantity x unit price - discount"""
    return to_money(Decimal(str(quantity)) * to_money(unit_price) - to_money(discount))


def _item_value(item, key):
    if isinstance(item, dict):
        return item.get(key, 0)
    return getattr(item, key, 0)


def compute_document_totals(items):
    """
    Sum line items into document totals.

    Args:
        items: iterable of dicts or objects exposing `total`, `tax`, `discount`

    Returns:
        dict with subtotal, total_tax, total_discount and grand_total where
        grand_total = subtotal + total_tax - total_discount
    """
    subtotal = Decimal('0.00')
    total_tax = Decimal('0.00')
    total_discount = Decimal('0.00')
    for item in items:
        subtotal += to_money(_item_value(item, 'total'))
        total_tax += to_money(_item_value(item, 'tax'))
        total_discount += to_money(_item_value(item, 'discount'))

    return {
        'subtotal': to_money(subtotal),
        'total_tax': to_money(total_tax),
        'total_discount': to_money(total_discount),
        'grand_total': to_money(subtotal + total_tax - total_discount),
    }


def apply_document_totals(document, items):
    """Copy computed totals onto an order/invoice instance (no save)"""
    totals = compute_document_totals(items)
    for field, value in totals.items():
        setattr(document, field, value)
    return totals


def derive_payment_status(amount_paid, grand_total, due_date, today):
    """
    Payment status as a function of what has been paid and when it is due.

    Unpaid when nothing is paid, Partially Paid below the grand total, Paid at
    or above it. Anything not Paid whose due date is before `today` is Overdue.
    """
    amount_paid = to_money(amount_paid)
    grand_total = to_money(grand_total)

    if amount_paid <= Decimal('0.00'):
        payment_status = PAYMENT_UNPAID
    elif amount_paid < grand_total:
        payment_status = PAYMENT_PARTIAL
    else:
        payment_status = PAYMENT_PAID

    if payment_status != PAYMENT_PAID and due_date is not None and due_date < today:
        payment_status = PAYMENT_OVERDUE
    return payment_status


def derive_receipt_status(lines):
    """
    Purchase order receipt status from its lines.

    Args:
        lines: iterable of (ordered_quantity, received_quantity) pairs

    Returns:
        'received' when every line is fully received, 'partially_received'
        when any line has a receipt, otherwise None (status left unchanged)
    """
    lines = list(lines)
    if not lines:
        return None
    if all(received >= ordered for ordered, received in lines):
        return 'received'
    if any(received > 0 for _, received in lines):
        return 'partially_received'
    return None


def compute_receipt_total(items):
    """GRN value: sum of accepted quantity x unit price"""
    total = Decimal('0.00')
    for item in items:
        total += Decimal(str(_item_value(item, 'accepted_quantity'))) * to_money(_item_value(item, 'unit_price'))
    return to_money(total)
