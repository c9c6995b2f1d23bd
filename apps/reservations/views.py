from drf_spectacular.utils import extend_schema
from rest_framework import viewsets, status, mixins
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.activity.serializers import ActivitySerializer
from apps.activity.services import get_reservation_activities
from apps.groups.serializers import GroupMemberSerializer

from .permissions import CanViewReservation
from .serializers import (
    ReservationCreateSerializer,
    ReminderResponseSerializer,
    ReservationDetailSerializer,
    ReservationSerializer,
    ReservationStatusSerializer,
)
from .services import (
    create_reservation,
    get_reservation,
    get_user_reservations,
    send_reminder,
    update_reservation_status,
)


class ReservationPagination(PageNumberPagination):
    """Custom pagination for reservations."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ReservationViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for reservations.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Reservations the user owns or is a member of
    create: Create a reservation and its group
    retrieve: Reservation with group and members
    """

    serializer_class = ReservationSerializer
    permission_classes = [IsAuthenticated, CanViewReservation]
    pagination_class = ReservationPagination

    def get_queryset(self):
        return get_user_reservations(user=self.request.user)

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'create':
            return ReservationCreateSerializer
        if self.action == 'retrieve':
            return ReservationDetailSerializer
        return ReservationSerializer

    @extend_schema(request=ReservationCreateSerializer, responses={201: ReservationDetailSerializer})
    def create(self, request, *args, **kwargs):
        """Create a reservation; the caller becomes the first group member."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation, _ = create_reservation(owner=request.user, **serializer.validated_data)

        reservation = get_reservation(reservation_id=reservation.id)
        output_serializer = ReservationDetailSerializer(reservation, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ReservationStatusSerializer, responses=ReservationSerializer)
    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        """Complete or cancel a reservation (owner only)."""
        serializer = ReservationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        update_reservation_status(
            reservation_id=pk,
            user=request.user,
            new_status=serializer.validated_data['status']
        )

        reservation = get_reservation(reservation_id=pk)
        return Response(ReservationSerializer(reservation, context={'request': request}).data)

    @extend_schema(responses=ActivitySerializer(many=True))
    @action(detail=True, methods=['get'])
    def activities(self, request, pk=None):
        """Everything that happened on this reservation, newest first."""
        reservation = self.get_object()
        activities = get_reservation_activities(reservation_id=reservation.id)
        return Response(ActivitySerializer(activities, many=True).data)

    @extend_schema(request=None, responses=ReminderResponseSerializer)
    @action(detail=True, methods=['post'])
    def remind(self, request, pk=None):
        """Remind unpaid members to settle their share (owner only)."""
        activity, unpaid = send_reminder(reservation_id=pk, user=request.user)
        return Response({
            'reminded': GroupMemberSerializer(unpaid, many=True).data,
            'activity_id': activity.id if activity else None,
        })
