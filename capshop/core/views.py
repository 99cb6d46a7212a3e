import logging

from django.db import connection, DatabaseError
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .models import AutomationLog
from .responses import success_response
from .serializers import (
    UserSerializer, CustomTokenObtainPairSerializer,
    CustomTokenRefreshSerializer, AutomationLogSerializer,
)

logger = logging.getLogger(__name__)

AUTOMATION_LOG_DEFAULT_LIMIT = 50
AUTOMATION_LOG_MAX_LIMIT = 500


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Exchange email and password for an access/refresh token pair"""
    serializer = CustomTokenObtainPairSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    logger.info(f"User {serializer.user.email} logged in")
    return success_response(serializer.validated_data, message='Login successful')


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh(request):
    """Issue a new access token from a refresh token"""
    serializer = CustomTokenRefreshSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return success_response(serializer.validated_data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Blacklist the caller's refresh token"""
    token = request.data.get('refresh')
    if not token:
        raise ValidationError({'refresh': ['This field is required.']})
    try:
        RefreshToken(token).blacklist()
    except TokenError:
        raise InvalidToken('Token is invalid or expired.')
    logger.info(f"User {request.user.email} logged out")
    return success_response(message='Logout successful')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user"""
    return success_response(UserSerializer(request.user).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def automation_log_list(request):
    """
    List automation log entries, newest first

    Query params:
        tables: comma separated table names (e.g. sales,order_materials)
        recordId: only entries for this record
        limit: max entries (default 50)
    """
    logs = AutomationLog.objects.select_related('user')

    tables = request.query_params.get('tables')
    if tables:
        names = [t.strip() for t in tables.split(',') if t.strip()]
        logs = logs.filter(table_name__in=names)

    record_id = request.query_params.get('recordId')
    if record_id:
        logs = logs.filter(record_id=str(record_id))

    try:
        limit = int(request.query_params.get('limit', AUTOMATION_LOG_DEFAULT_LIMIT))
    except (TypeError, ValueError):
        raise ValidationError({'limit': ['A valid integer is required.']})
    limit = max(1, min(limit, AUTOMATION_LOG_MAX_LIMIT))

    serializer = AutomationLogSerializer(logs[:limit], many=True)
    return success_response(serializer.data)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health(request):
    """Liveness probe; reports whether the database answers"""
    database = 'ok'
    try:
        connection.ensure_connection()
    except DatabaseError as e:
        logger.error(f"Health check database error: {str(e)}")
        database = 'unavailable'

    payload = {
        'success': database == 'ok',
        'status': 'OK' if database == 'ok' else 'DEGRADED',
        'database': database,
        'timestamp': timezone.now().isoformat(),
    }
    code = status.HTTP_200_OK if database == 'ok' else status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(payload, status=code)
