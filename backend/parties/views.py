from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.pagination import paginated_response
from backend.core.permissions import ADMIN, SALES, PURCHASE, role_required
from backend.core.utils import create_audit_log, get_object_or_404, pick_allowed
from .filters import CustomerFilter, SupplierFilter
from .models import Customer, Supplier
from .serializers import (
    CustomerSerializer, SupplierSerializer, CUSTOMER_UPDATE_FIELDS, SUPPLIER_UPDATE_FIELDS
)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES)])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        filterset = CustomerFilter(request.query_params, queryset=Customer.objects.all())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, CustomerSerializer)

    serializer = CustomerSerializer(data=request.data)
    if serializer.is_valid():
        customer = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Customer',
            object_id=customer.id,
            object_reference=customer.customer_code,
            changes={'name': customer.name, 'email': customer.email}
        )
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, role_required(ADMIN, SALES), role_required(ADMIN, methods=['DELETE'])])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=pick_allowed(request.data, CUSTOMER_UPDATE_FIELDS), partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Customer',
                object_id=customer.id,
                object_reference=customer.customer_code,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return error_response(serializer.errors)
    else:  # DELETE
        customer_id, code = customer.id, customer.customer_code
        customer.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Customer',
            object_id=customer_id,
            object_reference=code
        )
        return Response({'message': 'Customer removed'}, status=status.HTTP_200_OK)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, PURCHASE)])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        filterset = SupplierFilter(request.query_params, queryset=Supplier.objects.all())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, SupplierSerializer)

    serializer = SupplierSerializer(data=request.data)
    if serializer.is_valid():
        supplier = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Supplier',
            object_id=supplier.id,
            object_reference=supplier.supplier_code,
            changes={'name': supplier.name, 'email': supplier.email}
        )
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, role_required(ADMIN, PURCHASE), role_required(ADMIN, methods=['DELETE'])])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        return Response(SupplierSerializer(supplier).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=pick_allowed(request.data, SUPPLIER_UPDATE_FIELDS), partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Supplier',
                object_id=supplier.id,
                object_reference=supplier.supplier_code,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return error_response(serializer.errors)
    else:  # DELETE
        supplier_id, code = supplier.id, supplier.supplier_code
        supplier.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Supplier',
            object_id=supplier_id,
            object_reference=code
        )
        return Response({'message': 'Supplier removed'}, status=status.HTTP_200_OK)
