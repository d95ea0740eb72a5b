from decimal import Decimal

from django.db.models import Count, Sum
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.pagination import paginated_response
from backend.core.permissions import ADMIN, SALES, role_required
from backend.core.utils import create_audit_log, get_object_or_404, pick_allowed
from .filters import InvoiceFilter
from .models import Invoice
from .serializers import (
    InvoiceSerializer, InvoiceUpdateSerializer, PaymentSerializer, PaymentCreateSerializer
)
from . import services


def _invoice_queryset():
    return Invoice.objects.select_related('sales_order', 'customer', 'created_by').prefetch_related('items', 'items__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def invoice_list_create(request):
    """List all invoices or raise an invoice from a sales order"""
    if request.method == 'GET':
        filterset = InvoiceFilter(request.query_params, queryset=_invoice_queryset())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, InvoiceSerializer)

    serializer = InvoiceSerializer(data=request.data)
    if serializer.is_valid():
        invoice = serializer.save(created_by=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='Invoice',
            object_id=invoice.id,
            object_reference=invoice.invoice_number,
            changes={
                'order_number': invoice.sales_order.order_number,
                'grand_total': str(invoice.grand_total),
                'amount_paid': str(invoice.amount_paid),
                'payment_status': invoice.payment_status,
            }
        )
        return Response(InvoiceSerializer(_invoice_queryset().get(pk=invoice.pk)).data,
                        status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES), role_required(ADMIN, methods=['DELETE'])])
def invoice_detail(request, pk):
    """Retrieve, update or delete an invoice"""
    invoice = get_object_or_404(_invoice_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(InvoiceSerializer(invoice).data)
    elif request.method in ('PUT', 'PATCH'):
        if invoice.is_paid:
            return Response({'error': 'Cannot update paid invoice'}, status=status.HTTP_400_BAD_REQUEST)
        data = pick_allowed(request.data, services.INVOICE_UPDATE_FIELDS)
        serializer = InvoiceUpdateSerializer(invoice, data=data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Invoice',
                object_id=invoice.id,
                object_reference=invoice.invoice_number,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(InvoiceSerializer(_invoice_queryset().get(pk=invoice.pk)).data)
        return error_response(serializer.errors)
    else:  # DELETE
        invoice_id = invoice.id
        invoice_number = services.delete_invoice(invoice_id)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Invoice',
            object_id=invoice_id,
            object_reference=invoice_number
        )
        return Response({'message': 'Invoice removed'}, status=status.HTTP_200_OK)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def invoice_record_payment(request, pk):
    """Record a payment against an invoice"""
    get_object_or_404(Invoice, pk=pk)
    serializer = PaymentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(serializer.errors)

    data = serializer.validated_data
    invoice, payment = services.record_payment(
        pk,
        data['amount'],
        payment_method=data.get('payment_method'),
        reference=data.get('reference', ''),
        notes=data.get('notes', ''),
        created_by=request.user,
    )
    create_audit_log(
        request=request,
        action='payment_add',
        model_name='Invoice',
        object_id=invoice.id,
        object_reference=invoice.invoice_number,
        changes={
            'payment_id': payment.id,
            'amount': str(payment.amount),
            'payment_method': payment.payment_method,
            'amount_paid': str(invoice.amount_paid),
            'balance_due': str(invoice.balance_due),
            'payment_status': invoice.payment_status,
        }
    )
    return Response(InvoiceSerializer(_invoice_queryset().get(pk=invoice.pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def invoice_payments(request, pk):
    """Payments recorded against an invoice, newest first"""
    invoice = get_object_or_404(Invoice, pk=pk)
    payments = invoice.payments.select_related('created_by').order_by('-created_at', '-id')
    return Response(PaymentSerializer(payments, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def invoice_stats(request):
    """Invoice counts by payment status with collected and outstanding revenue"""
    counts = dict(
        Invoice.objects.values_list('payment_status').annotate(total=Count('id')).order_by()
    )
    revenue = Invoice.objects.filter(payment_status=Invoice.PAYMENT_PAID).aggregate(
        total=Sum('grand_total')
    )['total'] or Decimal('0.00')
    pending = Invoice.objects.filter(payment_status__in=Invoice.OPEN_STATUSES).aggregate(
        total=Sum('balance_due')
    )['total'] or Decimal('0.00')

    return Response({
        'total_invoices': sum(counts.values()),
        'paid_invoices': counts.get(Invoice.PAYMENT_PAID, 0),
        'partially_paid_invoices': counts.get(Invoice.PAYMENT_PARTIAL, 0),
        'unpaid_invoices': counts.get(Invoice.PAYMENT_UNPAID, 0),
        'overdue_invoices': counts.get(Invoice.PAYMENT_OVERDUE, 0),
        'total_revenue': str(revenue),
        'pending_revenue': str(pending),
    })
