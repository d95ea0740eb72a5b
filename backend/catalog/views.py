import logging

from django.db import transaction
from django.db.models import F
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.pagination import paginated_response
from backend.core.permissions import ADMIN, INVENTORY, role_required
from backend.core.utils import create_audit_log, get_object_or_404, pick_allowed
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer, StockUpdateSerializer, PRODUCT_UPDATE_FIELDS

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, role_required(ADMIN, INVENTORY, methods=['POST'])])
def product_list_create(request):
    """List all products or create a new product"""
    if request.method == 'GET':
        filterset = ProductFilter(request.query_params, queryset=Product.objects.all())
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, ProductSerializer)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=product.id,
            object_reference=product.sku,
            changes={'name': product.name, 'stock': product.stock, 'price': str(product.price)}
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([
    IsAuthenticated,
    role_required(ADMIN, INVENTORY, methods=['PUT', 'PATCH']),
    role_required(ADMIN, methods=['DELETE']),
])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        data = pick_allowed(request.data, PRODUCT_UPDATE_FIELDS)
        serializer = ProductSerializer(product, data=data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Product',
                object_id=product.id,
                object_reference=product.sku,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return error_response(serializer.errors)
    else:  # DELETE
        product_id, sku = product.id, product.sku
        product.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=product_id,
            object_reference=sku
        )
        return Response({'message': 'Product removed'}, status=status.HTTP_200_OK)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, role_required(ADMIN, INVENTORY)])
def product_stock_update(request, pk):
    """Adjust on-hand stock: add, subtract (floored at 0) or set"""
    serializer = StockUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(serializer.errors)

    quantity = serializer.validated_data['quantity']
    operation = serializer.validated_data['operation']

    with transaction.atomic():
        product = get_object_or_404(Product.objects.select_for_update(), pk=pk)
        old_stock = product.stock
        if operation == 'add':
            Product.objects.filter(pk=product.pk).update(stock=F('stock') + quantity)
        elif operation == 'subtract':
            Product.objects.filter(pk=product.pk).update(stock=max(0, old_stock - quantity))
        else:
            Product.objects.filter(pk=product.pk).update(stock=quantity)
        product.refresh_from_db()

    logger.info(f"Stock {operation} {quantity} on {product.sku}: {old_stock} -> {product.stock}")
    create_audit_log(
        request=request,
        action='stock_adjust',
        model_name='Product',
        object_id=product.id,
        object_reference=product.sku,
        changes={
            'operation': operation,
            'quantity': quantity,
            'old_stock': old_stock,
            'new_stock': product.stock,
            'reason': serializer.validated_data.get('reason', ''),
        }
    )
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock_products(request):
    """Products at or below their reorder level, lowest stock first"""
    queryset = Product.objects.filter(stock__lte=F('reorder_level')).order_by('stock', 'id')
    return Response(ProductSerializer(queryset, many=True).data)
