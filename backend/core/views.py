import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.db import connection
from django.utils import timezone
from .exceptions import error_response
from .models import AuditLog
from .pagination import paginated_response
from .permissions import IsAdminRole, get_user_role, is_admin
from .serializers import (
    UserSerializer, UserCreateSerializer, ProfileUpdateSerializer, AuditLogSerializer
)
from .utils import create_audit_log, get_object_or_404

logger = logging.getLogger(__name__)

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = get_user_role(user)
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except User.DoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


def _token_payload(user):
    token = CustomTokenObtainPairSerializer.get_token(user)
    return {
        'user': UserSerializer(user).data,
        'access': str(token.access_token),
        'refresh': str(token),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserCreateSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"Registered user {user.username} with role {user.role}")
        create_audit_log(
            request=request,
            user=user,
            action='create',
            model_name='User',
            object_id=user.id,
            object_reference=user.username,
            changes={'role': user.role}
        )
        return Response(_token_payload(user), status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get or update the current user's profile"""
    user = request.user
    if request.method == 'GET':
        user_data = UserSerializer(user).data
        user_data['role'] = get_user_role(user)
        user_data['is_admin'] = is_admin(user)
        return Response(user_data)

    serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='User',
            object_id=user.id,
            object_reference=user.username,
            changes={k: v for k, v in serializer.validated_data.items() if k != 'password'}
        )
        return Response(UserSerializer(user).data)
    return error_response(serializer.errors)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        queryset = User.objects.all().order_by('id')
        role = request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)
        return paginated_response(request, queryset, UserSerializer)

    serializer = UserCreateSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        user = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='User',
            object_id=user.id,
            object_reference=user.username,
            changes={'role': user.role}
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='User',
                object_id=user.id,
                object_reference=user.username,
                changes=dict(serializer.validated_data)
            )
            return Response(serializer.data)
        return error_response(serializer.errors)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        user_id, username = user.id, user.username
        user.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='User',
            object_id=user_id,
            object_reference=username
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs; non-admins only see their own entries"""
    queryset = AuditLog.objects.select_related('user')

    if not is_admin(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at', '-id')
    return paginated_response(request, queryset, AuditLogSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not is_admin(request.user) and audit_log.user_id != request.user.id:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    return Response(AuditLogSerializer(audit_log).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def health(request):
    """Liveness check including a database round trip"""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        database = 'ok'
    except Exception as e:
        logger.error(f"Health check database failure: {str(e)}")
        database = 'unavailable'
    return Response({
        'status': 'ok' if database == 'ok' else 'degraded',
        'database': database,
        'timestamp': timezone.now().isoformat(),
    }, status=status.HTTP_200_OK if database == 'ok' else status.HTTP_503_SERVICE_UNAVAILABLE)
