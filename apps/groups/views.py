from drf_spectacular.utils import extend_schema
from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Group
from .permissions import IsGroupMember
from .serializers import (
    GroupMemberSerializer,
    GroupSerializer,
    SharesResponseSerializer,
)

from apps.groups.services import (
    current_share,
    get_group_members,
    join_group,
)


class GroupViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only access to groups.

    Groups are created together with their reservation, so there is no
    create/update/delete here. Non-members get 404.

    list: Groups the user belongs to
    retrieve: Group with members and shares
    """

    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated, IsGroupMember]

    def get_queryset(self):
        """Return only groups where user is a member."""
        return (
            Group.objects
            .filter(members__user=self.request.user)
            .select_related('reservation')
            .prefetch_related('members__user')
            .distinct()
        )

    @extend_schema(responses=GroupMemberSerializer(many=True))
    @action(detail=True, methods=['get'])
    def members(self, request, pk=None):
        """Get all members of the group in join order."""
        group = self.get_object()
        members = get_group_members(group_id=group.id)
        serializer = GroupMemberSerializer(members, many=True)
        return Response(serializer.data)

    @extend_schema(responses=SharesResponseSerializer)
    @action(detail=True, methods=['get'])
    def shares(self, request, pk=None):
        """Current split of the reservation cost."""
        group = self.get_object()
        shares = current_share(group_id=group.id)
        return Response({
            'total_cost': str(group.reservation.total_cost),
            'shares': [
                {
                    'member_id': member.id,
                    'user_id': member.user_id,
                    'display_name': member.user.get_display_name(),
                    'share_amount': str(amount),
                    'is_paid': member.is_paid,
                }
                for member, amount in shares.items()
            ],
        })


@extend_schema(
    request=None,
    responses={201: GroupMemberSerializer},
    description="Join a group using its invite code"
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join_by_invite(request, invite_code):
    """Join the group behind an invite link."""
    member = join_group(invite_code=invite_code, user=request.user)
    serializer = GroupMemberSerializer(member)
    return Response(serializer.data, status=status.HTTP_201_CREATED)
