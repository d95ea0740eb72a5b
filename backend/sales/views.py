from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.pagination import paginated_response
from backend.core.permissions import ADMIN, SALES, role_required
from backend.core.serializers import StatusChangeSerializer
from backend.core.utils import create_audit_log, get_object_or_404, pick_allowed
from .filters import SalesOrderFilter
from .models import SalesOrder
from .serializers import SalesOrderSerializer
from .services import change_sales_order_status, SALES_ORDER_UPDATE_FIELDS


def _sales_order_queryset():
    return SalesOrder.objects.select_related('customer', 'created_by').prefetch_related('items', 'items__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def sales_order_list_create(request):
    """List all sales orders or create a new sales order"""
    if request.method == 'GET':
        filterset = SalesOrderFilter(request.query_params, queryset=_sales_order_queryset())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, SalesOrderSerializer)

    serializer = SalesOrderSerializer(data=request.data)
    if serializer.is_valid():
        order = serializer.save(created_by=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='SalesOrder',
            object_id=order.id,
            object_reference=order.order_number,
            changes={
                'customer_id': order.customer_id,
                'items_count': order.items.count(),
                'grand_total': str(order.grand_total),
            }
        )
        return Response(SalesOrderSerializer(_sales_order_queryset().get(pk=order.pk)).data,
                        status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES), role_required(ADMIN, methods=['DELETE'])])
def sales_order_detail(request, pk):
    """Retrieve, update or delete a sales order"""
    order = get_object_or_404(_sales_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(SalesOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        if order.is_terminal:
            return Response({'error': 'Cannot update delivered or cancelled orders'},
                            status=status.HTTP_400_BAD_REQUEST)
        data = pick_allowed(request.data, SALES_ORDER_UPDATE_FIELDS)
        serializer = SalesOrderSerializer(order, data=data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='SalesOrder',
                object_id=order.id,
                object_reference=order.order_number,
                changes={
                    'fields': sorted(data.keys()),
                    'grand_total': str(order.grand_total),
                }
            )
            return Response(SalesOrderSerializer(_sales_order_queryset().get(pk=order.pk)).data)
        return error_response(serializer.errors)
    else:  # DELETE
        order_id, order_number = order.id, order.order_number
        order.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='SalesOrder',
            object_id=order_id,
            object_reference=order_number
        )
        return Response({'message': 'Sales order removed'}, status=status.HTTP_200_OK)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def sales_order_status(request, pk):
    """Change the status of a sales order, shipping stock out of Confirmed"""
    get_object_or_404(SalesOrder, pk=pk)
    serializer = StatusChangeSerializer(data=request.data, choices=SalesOrder.STATUS_CHOICES)
    if not serializer.is_valid():
        return error_response(serializer.errors)

    new_status = serializer.validated_data['status']
    order, previous_status, movements = change_sales_order_status(pk, new_status)

    create_audit_log(
        request=request,
        action='status_change',
        model_name='SalesOrder',
        object_id=order.id,
        object_reference=order.order_number,
        changes={'old_status': previous_status, 'new_status': new_status}
    )
    for movement in movements:
        create_audit_log(
            request=request,
            action='stock_ship',
            model_name='Product',
            object_id=movement['product_id'],
            object_reference=movement['sku'],
            changes={**movement, 'order_number': order.order_number}
        )
    return Response(SalesOrderSerializer(_sales_order_queryset().get(pk=order.pk)).data)
