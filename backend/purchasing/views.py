from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.pagination import paginated_response
from backend.core.permissions import ADMIN, PURCHASE, INVENTORY, role_required
from backend.core.serializers import StatusChangeSerializer
from backend.core.utils import create_audit_log, get_object_or_404, pick_allowed
from .filters import PurchaseOrderFilter, GRNFilter
from .models import PurchaseOrder, GRN
from .serializers import PurchaseOrderSerializer, GRNSerializer, GRNUpdateSerializer
from . import services


def _purchase_order_queryset():
    return PurchaseOrder.objects.select_related('supplier', 'created_by').prefetch_related('items', 'items__product')


def _grn_queryset():
    return GRN.objects.select_related(
        'purchase_order', 'supplier', 'received_by', 'approved_by'
    ).prefetch_related('items', 'items__product')


# Purchase order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, PURCHASE)])
def purchase_order_list_create(request):
    """List all purchase orders or create a new purchase order"""
    if request.method == 'GET':
        filterset = PurchaseOrderFilter(request.query_params, queryset=_purchase_order_queryset())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, PurchaseOrderSerializer)

    serializer = PurchaseOrderSerializer(data=request.data)
    if serializer.is_valid():
        po = serializer.save(created_by=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='PurchaseOrder',
            object_id=po.id,
            object_reference=po.po_number,
            changes={
                'supplier_id': po.supplier_id,
                'items_count': po.items.count(),
                'grand_total': str(po.grand_total),
            }
        )
        return Response(PurchaseOrderSerializer(_purchase_order_queryset().get(pk=po.pk)).data,
                        status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, role_required(ADMIN, PURCHASE), role_required(ADMIN, methods=['DELETE'])])
def purchase_order_detail(request, pk):
    """Retrieve, update or delete a purchase order"""
    po = get_object_or_404(_purchase_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(po).data)
    elif request.method in ('PUT', 'PATCH'):
        if po.is_terminal:
            return Response({'error': 'Cannot update received or cancelled purchase orders'},
                            status=status.HTTP_400_BAD_REQUEST)
        data = pick_allowed(request.data, services.PURCHASE_ORDER_UPDATE_FIELDS)
        serializer = PurchaseOrderSerializer(po, data=data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='PurchaseOrder',
                object_id=po.id,
                object_reference=po.po_number,
                changes={'fields': sorted(data.keys()), 'grand_total': str(po.grand_total)}
            )
            return Response(PurchaseOrderSerializer(_purchase_order_queryset().get(pk=po.pk)).data)
        return error_response(serializer.errors)
    else:  # DELETE
        po_id, po_number = po.id, po.po_number
        po.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='PurchaseOrder',
            object_id=po_id,
            object_reference=po_number
        )
        return Response({'message': 'Purchase order removed'}, status=status.HTTP_200_OK)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, role_required(ADMIN, PURCHASE)])
def purchase_order_status(request, pk):
    """Manually move a purchase order between draft, sent, confirmed and cancelled"""
    get_object_or_404(PurchaseOrder, pk=pk)
    serializer = StatusChangeSerializer(data=request.data, choices=PurchaseOrder.STATUS_CHOICES)
    if not serializer.is_valid():
        return error_response(serializer.errors)

    new_status = serializer.validated_data['status']
    po, previous_status = services.change_purchase_order_status(pk, new_status)
    create_audit_log(
        request=request,
        action='status_change',
        model_name='PurchaseOrder',
        object_id=po.id,
        object_reference=po.po_number,
        changes={'old_status': previous_status, 'new_status': new_status}
    )
    return Response(PurchaseOrderSerializer(_purchase_order_queryset().get(pk=po.pk)).data)


# GRN views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, INVENTORY, PURCHASE)])
def grn_list_create(request):
    """List all GRNs or record goods received against a purchase order"""
    if request.method == 'GET':
        filterset = GRNFilter(request.query_params, queryset=_grn_queryset())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, GRNSerializer)

    serializer = GRNSerializer(data=request.data)
    if serializer.is_valid():
        grn = serializer.save(received_by=request.user)
        grn = _grn_queryset().get(pk=grn.pk)
        create_audit_log(
            request=request,
            action='create',
            model_name='GRN',
            object_id=grn.id,
            object_reference=grn.grn_number,
            changes={
                'po_number': grn.purchase_order.po_number,
                'po_status': grn.purchase_order.status,
                'total_amount': str(grn.total_amount),
                'items': [
                    {'product_id': item.product_id, 'accepted_quantity': item.accepted_quantity}
                    for item in grn.items.all()
                ],
            }
        )
        return Response(GRNSerializer(grn).data, status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([
    IsAuthenticated,
    role_required(ADMIN, INVENTORY, PURCHASE, methods=['GET']),
    role_required(ADMIN, INVENTORY, methods=['PUT', 'PATCH']),
    role_required(ADMIN, methods=['DELETE']),
])
def grn_detail(request, pk):
    """Retrieve, update or delete a GRN"""
    grn = get_object_or_404(_grn_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(GRNSerializer(grn).data)
    elif request.method in ('PUT', 'PATCH'):
        data = pick_allowed(request.data, services.GRN_UPDATE_FIELDS)
        serializer = GRNUpdateSerializer(grn, data=data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='GRN',
                object_id=grn.id,
                object_reference=grn.grn_number,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(GRNSerializer(_grn_queryset().get(pk=grn.pk)).data)
        return error_response(serializer.errors)
    else:  # DELETE
        grn_id = grn.id
        grn_number = services.delete_grn(grn_id)
        create_audit_log(
            request=request,
            action='delete',
            model_name='GRN',
            object_id=grn_id,
            object_reference=grn_number
        )
        return Response({'message': 'GRN removed'}, status=status.HTTP_200_OK)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, role_required(ADMIN, INVENTORY)])
def grn_approve(request, pk):
    """Approve a pending GRN, adding accepted quantities to stock"""
    get_object_or_404(GRN, pk=pk)
    grn, movements = services.approve_grn(pk, approved_by=request.user)

    create_audit_log(
        request=request,
        action='grn_approve',
        model_name='GRN',
        object_id=grn.id,
        object_reference=grn.grn_number,
        changes={'total_amount': str(grn.total_amount), 'products': len(movements)}
    )
    for movement in movements:
        create_audit_log(
            request=request,
            action='stock_receive',
            model_name='Product',
            object_id=movement['product_id'],
            object_reference=movement['sku'],
            changes={**movement, 'grn_number': grn.grn_number}
        )
    return Response(GRNSerializer(_grn_queryset().get(pk=grn.pk)).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, role_required(ADMIN, INVENTORY)])
def grn_reject(request, pk):
    """Reject a pending GRN; its quantities come back off the purchase order"""
    get_object_or_404(GRN, pk=pk)
    grn = services.reject_grn(pk)
    create_audit_log(
        request=request,
        action='status_change',
        model_name='GRN',
        object_id=grn.id,
        object_reference=grn.grn_number,
        changes={'old_status': GRN.STATUS_PENDING, 'new_status': grn.status}
    )
    return Response(GRNSerializer(_grn_queryset().get(pk=grn.pk)).data)
