"""
Purchase order and GRN write paths.

Goods flow in two steps: creating a GRN books the accepted quantities against
the purchase order lines, approving it moves them into product stock.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from backend.catalog.models import Product
from backend.core.calculations import compute_line_total, compute_receipt_total
from backend.core.exceptions import BusinessRuleError
from .models import PurchaseOrder, PurchaseOrderItem, GRN, GRNItem

logger = logging.getLogger(__name__)

PURCHASE_ORDER_UPDATE_FIELDS = ['supplier', 'expected_delivery_date', 'notes', 'items']
GRN_UPDATE_FIELDS = ['receipt_date', 'notes']


def _create_po_items(po, items_data):
    lines = []
    for item in items_data:
        line = PurchaseOrderItem(
            purchase_order=po,
            product=item['product'],
            quantity=item['quantity'],
            unit_price=item['unit_price'],
            discount=item.get('discount', 0),
            tax=item.get('tax', 0),
        )
        line.total = compute_line_total(line.quantity, line.unit_price, line.discount)
        lines.append(line)
    PurchaseOrderItem.objects.bulk_create(lines)
    return lines


def create_purchase_order(validated_data, items_data, created_by=None):
    if not items_data:
        raise BusinessRuleError('Purchase order must have at least one item')

    with transaction.atomic():
        po = PurchaseOrder(created_by=created_by, **validated_data)
        po.save()
        lines = _create_po_items(po, items_data)
        po.recalculate_totals(lines)
        po.save(update_fields=['subtotal', 'total_tax', 'total_discount', 'grand_total', 'updated_at'])

    logger.info(f"Created purchase order {po.po_number} with {len(lines)} item(s), total {po.grand_total}")
    return po


def update_purchase_order(po, validated_data, items_data=None):
    """Apply allowed header changes; lines may only be replaced before any receipt"""
    if po.is_terminal:
        raise BusinessRuleError('Cannot update received or cancelled purchase orders')

    with transaction.atomic():
        for field, value in validated_data.items():
            setattr(po, field, value)

        if items_data is not None:
            if not items_data:
                raise BusinessRuleError('Purchase order must have at least one item')
            if po.has_receipts or po.grns.exists():
                raise BusinessRuleError('Cannot change items after goods have been received')
            po.items.all().delete()
            lines = _create_po_items(po, items_data)
        else:
            lines = list(po.items.all())

        po.recalculate_totals(lines)
        po.save()

    return po


def change_purchase_order_status(po_id, new_status):
    """
    Manual status change. Receipt statuses are only reached through GRNs.

    Returns:
        (purchase_order, previous_status)
    """
    if new_status in PurchaseOrder.RECEIPT_STATUSES:
        raise BusinessRuleError('Receipt statuses are set by goods received notes')

    with transaction.atomic():
        po = PurchaseOrder.objects.select_for_update().get(pk=po_id)
        previous_status = po.status
        if po.is_terminal:
            raise BusinessRuleError(
                f'Cannot change status of a {po.get_status_display().lower()} purchase order'
            )
        po.status = new_status
        po.save(update_fields=['status', 'updated_at'])

    logger.info(f"Purchase order {po.po_number}: {previous_status} -> {new_status}")
    return po, previous_status


def _find_po_line(po_lines, product_id):
    for line in po_lines:
        if line.product_id == product_id:
            return line
    return None


def create_grn(validated_data, items_data, received_by=None):
    """
    Record a receipt against a purchase order.

    Each line's accepted quantity is added to the first matching PO line and
    the PO status is re-derived. Product stock is not touched here.
    """
    if not items_data:
        raise BusinessRuleError('GRN must have at least one item')

    with transaction.atomic():
        po = PurchaseOrder.objects.select_for_update().get(pk=validated_data['purchase_order'].pk)
        if po.is_terminal:
            raise BusinessRuleError(
                f'Cannot receive goods against a {po.get_status_display().lower()} purchase order'
            )

        po_lines = list(po.items.all())
        grn_lines = []
        touched = {}
        for item in items_data:
            product = item['product']
            po_line = _find_po_line(po_lines, product.pk)
            if po_line is None:
                raise BusinessRuleError(f'Product {product.name} is not on purchase order {po.po_number}')

            unit_price = item.get('unit_price')
            if unit_price is None:
                unit_price = po_line.unit_price

            grn_lines.append(GRNItem(
                product=product,
                ordered_quantity=po_line.quantity,
                received_quantity=item['received_quantity'],
                accepted_quantity=item['accepted_quantity'],
                rejected_quantity=item.get('rejected_quantity', 0),
                unit_price=unit_price,
                remarks=item.get('remarks', ''),
            ))
            po_line.received_quantity += item['accepted_quantity']
            touched[po_line.pk] = po_line

        for po_line in touched.values():
            po_line.save(update_fields=['received_quantity'])

        grn = GRN(
            purchase_order=po,
            supplier=po.supplier,
            received_by=received_by,
            **{k: v for k, v in validated_data.items() if k != 'purchase_order'}
        )
        grn.total_amount = compute_receipt_total(grn_lines)
        grn.save()
        for line in grn_lines:
            line.grn = grn
        GRNItem.objects.bulk_create(grn_lines)

        previous_status = po.status
        po.refresh_receipt_status()
        po.save(update_fields=['status', 'updated_at'])

    logger.info(
        f"GRN {grn.grn_number} recorded against {po.po_number}: "
        f"PO status {previous_status} -> {po.status}"
    )
    return grn


def _reverse_receipt(grn):
    """Take a GRN's accepted quantities back off its purchase order"""
    po = PurchaseOrder.objects.select_for_update().get(pk=grn.purchase_order_id)
    po_lines = list(po.items.all())
    touched = {}
    for item in grn.items.all():
        po_line = _find_po_line(po_lines, item.product_id)
        if po_line is None:
            logger.warning(f"GRN {grn.grn_number}: product {item.product_id} no longer on {po.po_number}")
            continue
        po_line.received_quantity = max(0, po_line.received_quantity - item.accepted_quantity)
        touched[po_line.pk] = po_line

    for po_line in touched.values():
        po_line.save(update_fields=['received_quantity'])

    po.refresh_receipt_status()
    po.save(update_fields=['status', 'updated_at'])
    return po


def update_grn(grn, validated_data):
    if not grn.is_pending:
        raise BusinessRuleError(f'Cannot update {grn.get_status_display().lower()} GRN')
    for field, value in validated_data.items():
        setattr(grn, field, value)
    grn.save()
    return grn


def approve_grn(grn_id, approved_by=None):
    """
    Approve a pending GRN and add accepted quantities to product stock.

    The GRN row is locked, so a second approval sees the approved status and
    is refused without touching stock again.

    Returns:
        (grn, stock_movements)
    """
    with transaction.atomic():
        grn = GRN.objects.select_for_update().get(pk=grn_id)
        if grn.status == GRN.STATUS_APPROVED:
            raise BusinessRuleError('GRN already approved')
        if grn.status != GRN.STATUS_PENDING:
            raise BusinessRuleError(f'Cannot approve {grn.get_status_display().lower()} GRN')

        movements = []
        for item in grn.items.all():
            if item.accepted_quantity == 0:
                continue
            Product.objects.filter(pk=item.product_id).update(
                stock=F('stock') + item.accepted_quantity
            )
            product = Product.objects.only('id', 'sku', 'stock').get(pk=item.product_id)
            movements.append({
                'product_id': product.id,
                'sku': product.sku,
                'quantity': item.accepted_quantity,
                'new_stock': product.stock,
            })

        grn.status = GRN.STATUS_APPROVED
        grn.approved_by = approved_by
        grn.approved_at = timezone.now()
        grn.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])

    logger.info(f"GRN {grn.grn_number} approved; stock updated for {len(movements)} product(s)")
    return grn, movements


def reject_grn(grn_id):
    """Reject a pending GRN, returning its quantities to the purchase order"""
    with transaction.atomic():
        grn = GRN.objects.select_for_update().get(pk=grn_id)
        if not grn.is_pending:
            raise BusinessRuleError(f'Cannot reject {grn.get_status_display().lower()} GRN')
        po = _reverse_receipt(grn)
        grn.status = GRN.STATUS_REJECTED
        grn.save(update_fields=['status', 'updated_at'])

    logger.info(f"GRN {grn.grn_number} rejected; {po.po_number} now {po.status}")
    return grn


def delete_grn(grn_id):
    """Delete a GRN that has not been approved, reversing a pending receipt"""
    with transaction.atomic():
        grn = GRN.objects.select_for_update().get(pk=grn_id)
        if grn.status == GRN.STATUS_APPROVED:
            raise BusinessRuleError('Cannot delete approved GRN')
        if grn.is_pending:
            _reverse_receipt(grn)
        grn_number = grn.grn_number
        grn.delete()

    logger.info(f"GRN {grn_number} deleted")
    return grn_number
