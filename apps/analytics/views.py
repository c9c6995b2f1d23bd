from drf_spectacular.utils import extend_schema
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .analytics import DashboardQueries
from .serializers import DashboardResponseSerializer, ErrorSerializer


@extend_schema(
    responses={
        200: DashboardResponseSerializer,
        401: ErrorSerializer,
    },
    description="Reservations, summary stats and recent activity for the current user.",
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Dashboard for the current user - thin HTTP handler."""
    data = DashboardQueries.compute_dashboard(request.user)
    serializer = DashboardResponseSerializer(data, context={'request': request})
    return Response(serializer.data)
