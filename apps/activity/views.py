from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import ActivitySerializer
from .services import get_user_activities

MAX_ACTIVITY_LIMIT = 100


@extend_schema(
    parameters=[
        OpenApiParameter(name='limit', type=int, description='Maximum entries (default 10, max 100)'),
    ],
    responses=ActivitySerializer(many=True),
    description="Current user's activity feed, newest first"
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_activities(request):
    try:
        limit = int(request.query_params.get('limit', 10))
    except ValueError:
        return Response({'error': 'limit must be an integer'}, status=400)
    limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))

    activities = get_user_activities(user=request.user, limit=limit)
    return Response(ActivitySerializer(activities, many=True).data)
