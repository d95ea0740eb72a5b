import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum, Count, F, DecimalField
from django.db.models.functions import TruncDate, TruncWeek, TruncMonth
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.catalog.serializers import ProductSerializer
from backend.core.pagination import get_pagination_params
from backend.invoicing.models import Invoice
from backend.parties.models import Customer, Supplier
from backend.purchasing.models import PurchaseOrder
from backend.sales.models import SalesOrder, SalesOrderItem

logger = logging.getLogger('backend.reports')

# period -> (bucket function, look-back window)
TREND_PERIODS = {
    'month': (TruncDate, timedelta(days=30)),
    'quarter': (TruncWeek, timedelta(days=91)),
    'year': (TruncMonth, timedelta(days=365)),
}


def _limit(request):
    _, limit = get_pagination_params(request)
    return limit


def _money(value):
    return str(value if value is not None else Decimal('0.00'))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_overview(request):
    """Headline counts for inventory, parties, orders and revenue"""
    total_revenue = Invoice.objects.filter(payment_status=Invoice.PAYMENT_PAID).aggregate(
        total=Sum('grand_total')
    )['total']
    pending_payments = Invoice.objects.filter(payment_status__in=Invoice.OPEN_STATUSES).aggregate(
        total=Sum('balance_due')
    )['total']

    return Response({
        'inventory': {
            'total_products': Product.objects.count(),
            'low_stock_count': Product.objects.filter(stock__lte=F('reorder_level')).count(),
        },
        'customers': {
            'total': Customer.objects.filter(is_active=True).count(),
        },
        'suppliers': {
            'total': Supplier.objects.filter(is_active=True).count(),
        },
        'sales': {
            'total_orders': SalesOrder.objects.count(),
            'pending_orders': SalesOrder.objects.filter(status__in=SalesOrder.OPEN_STATUSES).count(),
        },
        'purchases': {
            'total_orders': PurchaseOrder.objects.count(),
            'pending_orders': PurchaseOrder.objects.filter(status__in=PurchaseOrder.OPEN_STATUSES).count(),
        },
        'revenue': {
            'total': _money(total_revenue),
            'pending': _money(pending_payments),
            'overdue_invoices': Invoice.objects.filter(payment_status=Invoice.PAYMENT_OVERDUE).count(),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_trends(request):
    """
    Sales order count and revenue bucketed over a recent window.

    `period=month` gives daily buckets over the last 30 days, `quarter` weekly
    buckets over about three months and `year` monthly buckets over a year.
    """
    period = request.query_params.get('period', 'month')
    if period not in TREND_PERIODS:
        return Response({'error': 'period must be one of: month, quarter, year'}, status=400)

    trunc, window = TREND_PERIODS[period]
    since = timezone.now() - window

    buckets = SalesOrder.objects.filter(created_at__gte=since).annotate(
        bucket=trunc('created_at')
    ).values('bucket').annotate(
        total_orders=Count('id'),
        total_revenue=Sum('grand_total', output_field=DecimalField()),
    ).order_by('bucket')

    return Response({
        'period': period,
        'from': since.date().isoformat(),
        'trends': [
            {
                'date': row['bucket'].isoformat() if row['bucket'] else None,
                'total_orders': row['total_orders'],
                'total_revenue': _money(row['total_revenue']),
            }
            for row in buckets
        ],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def top_products(request):
    """Best selling products by sales order line revenue"""
    limit = _limit(request)
    rows = SalesOrderItem.objects.values(
        'product_id', 'product__name', 'product__sku'
    ).annotate(
        total_quantity=Sum('quantity'),
        total_revenue=Sum('total', output_field=DecimalField()),
    ).order_by('-total_revenue', 'product_id')[:limit]

    return Response([
        {
            'product_id': row['product_id'],
            'name': row['product__name'],
            'sku': row['product__sku'],
            'total_quantity': row['total_quantity'],
            'total_revenue': _money(row['total_revenue']),
        }
        for row in rows
    ])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def top_customers(request):
    """Customers ranked by sales order value"""
    limit = _limit(request)
    rows = SalesOrder.objects.values(
        'customer_id', 'customer__name', 'customer__customer_code'
    ).annotate(
        total_orders=Count('id'),
        total_revenue=Sum('grand_total', output_field=DecimalField()),
    ).order_by('-total_revenue', 'customer_id')[:limit]

    return Response([
        {
            'customer_id': row['customer_id'],
            'name': row['customer__name'],
            'customer_code': row['customer__customer_code'],
            'total_orders': row['total_orders'],
            'total_revenue': _money(row['total_revenue']),
        }
        for row in rows
    ])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def recent_activities(request):
    """Newest sales orders and invoices merged into one feed"""
    limit = _limit(request)

    activities = []
    for order in SalesOrder.objects.select_related('customer').order_by('-created_at', '-id')[:limit]:
        activities.append({
            'type': 'Sales Order',
            'id': order.id,
            'reference': order.order_number,
            'customer': order.customer.name,
            'amount': _money(order.grand_total),
            'status': order.status,
            'date': order.created_at,
        })
    for invoice in Invoice.objects.select_related('customer').order_by('-created_at', '-id')[:limit]:
        activities.append({
            'type': 'Invoice',
            'id': invoice.id,
            'reference': invoice.invoice_number,
            'customer': invoice.customer.name,
            'amount': _money(invoice.grand_total),
            'status': invoice.payment_status,
            'date': invoice.created_at,
        })

    activities.sort(key=lambda a: a['date'], reverse=True)
    activities = activities[:limit]
    for activity in activities:
        activity['date'] = activity['date'].isoformat()
    return Response(activities)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_alerts(request):
    """Products running low (at or below reorder level) and out of stock"""
    low_stock = Product.objects.filter(stock__gt=0, stock__lte=F('reorder_level')).order_by('stock', 'id')
    out_of_stock = Product.objects.filter(stock=0).order_by('id')

    logger.debug(f"Inventory alerts: {low_stock.count()} low, {out_of_stock.count()} out of stock")
    return Response({
        'low_stock': ProductSerializer(low_stock, many=True).data,
        'out_of_stock': ProductSerializer(out_of_stock, many=True).data,
    })
