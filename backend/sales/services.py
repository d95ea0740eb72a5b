"""Sales order write paths: creation, item replacement and status moves"""
import logging

from django.db import transaction

from backend.catalog.models import Product
from backend.core.calculations import compute_line_total
from backend.core.exceptions import BusinessRuleError
from .models import SalesOrder, SalesOrderItem

logger = logging.getLogger(__name__)

SALES_ORDER_UPDATE_FIELDS = ['customer', 'expected_delivery_date', 'notes', 'items']


def check_stock_available(items_data):
    """
    Refuse lines asking for more than is on hand.

    Quantities for the same product are summed before comparing.
    """
    requested = {}
    for item in items_data:
        product = item['product']
        requested.setdefault(product.pk, [product, 0])
        requested[product.pk][1] += item['quantity']

    for product, quantity in requested.values():
        product.refresh_from_db(fields=['stock'])
        if product.stock < quantity:
            raise BusinessRuleError(f'Insufficient stock for product {product.name}')


def _create_items(order, items_data):
    lines = []
    for item in items_data:
        line = SalesOrderItem(
            sales_order=order,
            product=item['product'],
            quantity=item['quantity'],
            unit_price=item['unit_price'],
            discount=item.get('discount', 0),
            tax=item.get('tax', 0),
        )
        line.total = compute_line_total(line.quantity, line.unit_price, line.discount)
        lines.append(line)
    SalesOrderItem.objects.bulk_create(lines)
    return lines


def create_sales_order(validated_data, items_data, created_by=None):
    """Create an order with its lines and derived totals"""
    if not items_data:
        raise BusinessRuleError('Sales order must have at least one item')
    check_stock_available(items_data)

    with transaction.atomic():
        order = SalesOrder(created_by=created_by, **validated_data)
        order.save()
        lines = _create_items(order, items_data)
        order.recalculate_totals(lines)
        order.save(update_fields=['subtotal', 'total_tax', 'total_discount', 'grand_total', 'updated_at'])

    logger.info(f"Created sales order {order.order_number} with {len(lines)} item(s), total {order.grand_total}")
    return order


def update_sales_order(order, validated_data, items_data=None):
    """Apply allowed header changes; lines are frozen once stock has shipped"""
    with transaction.atomic():
        locked = SalesOrder.objects.select_for_update().only('status', 'stock_deducted').get(pk=order.pk)
        order.status = locked.status
        order.stock_deducted = locked.stock_deducted
        if order.is_terminal:
            raise BusinessRuleError('Cannot update delivered or cancelled orders')

        for field, value in validated_data.items():
            setattr(order, field, value)

        if items_data is not None:
            if order.stock_deducted:
                raise BusinessRuleError('Cannot change items after the order has shipped')
            if not items_data:
                raise BusinessRuleError('Sales order must have at least one item')
            check_stock_available(items_data)
            order.items.all().delete()
            lines = _create_items(order, items_data)
        else:
            lines = list(order.items.all())

        order.recalculate_totals(lines)
        order.save()

    return order


def change_sales_order_status(order_id, new_status):
    """
    Move an order to `new_status`.

    Leaving Confirmed for Shipped or Delivered deducts each line's quantity
    from product stock, floored at zero. The deduction happens at most once
    per order: `stock_deducted` is checked and set on the locked row, so
    neither a repeated request nor a later Confirmed -> Shipped cycle takes
    stock again.

    Returns:
        (order, previous_status, stock_movements)
    """
    with transaction.atomic():
        order = SalesOrder.objects.select_for_update().get(pk=order_id)
        previous_status = order.status

        if order.is_terminal:
            raise BusinessRuleError(
                f'Cannot change status of a {order.get_status_display().lower()} order'
            )

        movements = []
        if (new_status in SalesOrder.SHIPPING_STATUSES
                and previous_status == SalesOrder.STATUS_CONFIRMED
                and not order.stock_deducted):
            order.stock_deducted = True
            for item in order.items.all():
                product = Product.objects.select_for_update().get(pk=item.product_id)
                old_stock = product.stock
                product.stock = max(0, old_stock - item.quantity)
                product.save(update_fields=['stock', 'updated_at'])
                movements.append({
                    'product_id': product.id,
                    'sku': product.sku,
                    'quantity': item.quantity,
                    'old_stock': old_stock,
                    'new_stock': product.stock,
                })
                if old_stock < item.quantity:
                    logger.warning(
                        f"Stock for {product.sku} floored at 0 while shipping {order.order_number} "
                        f"(had {old_stock}, needed {item.quantity})"
                    )

        order.status = new_status
        order.save(update_fields=['status', 'stock_deducted', 'updated_at'])

    logger.info(f"Sales order {order.order_number}: {previous_status} -> {new_status}")
    return order, previous_status, movements
