"""
Dispute views and API endpoints.
Participant endpoints plus the admin decision panel.
"""
import logging
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse
from common.exceptions import ServiceError
from apps.disputes.models import Dispute
from apps.disputes.permissions import IsAdminUser, IsDisputeParticipant
from apps.disputes.serializers import (
    AddEvidenceSerializer,
    AppealDisputeSerializer,
    CreateDisputeSerializer,
    DisputeDetailSerializer,
    DisputeSerializer,
    ListDisputesSerializer,
    RejectDisputeSerializer,
    ResolveDisputeSerializer,
    StatisticsQuerySerializer,
    UpdateStatusSerializer,
)
from apps.disputes.services.auto_resolution import AutoResolutionSweeper
from apps.disputes.services.dispute_service import DisputeService

logger = logging.getLogger(__name__)

dispute_service = DisputeService()


def acting_identity(request, supplied=None):
    """
    Identity the request acts as.
    Staff may act on behalf of another identity; everyone else acts as themselves.
    """
    if supplied and request.user.is_staff:
        return supplied
    return request.user.get_username()


def error_response(error: ServiceError) -> Response:
    logger.warning(f"Rejected dispute request ({error.code}): {error.message}")
    return Response(error.to_dict(), status=error.status_code)


# ===== PARTICIPANT ENDPOINTS =====

@extend_schema(
    methods=['GET'],
    tags=['Disputes'],
    summary='List disputes',
    parameters=[ListDisputesSerializer],
    responses={200: OpenApiResponse(description='{"disputes": [...], "total": n}')}
)
@extend_schema(
    methods=['POST'],
    tags=['Disputes'],
    summary='Raise a dispute on a split',
    description='Freezes the split. Only split participants can raise disputes; one open dispute per split.',
    request=CreateDisputeSerializer,
    responses={201: DisputeSerializer}
)
@api_view(['GET', 'POST'])
@permission_classes([permissions.IsAuthenticated])
def disputes(request):
    if request.method == 'POST':
        return create_dispute(request)
    return list_disputes(request)


def list_disputes(request):
    serializer = ListDisputesSerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = dispute_service.list_disputes(**serializer.validated_data)
    except ServiceError as e:
        return error_response(e)

    return Response({
        'disputes': DisputeSerializer(result['disputes'], many=True).data,
        'total': result['total'],
    })


def create_dispute(request):
    """
    Create a dispute for a split.
    Only split participants can create disputes.
    """
    serializer = CreateDisputeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        dispute = dispute_service.create_dispute(
            split_id=data['split_id'],
            raised_by=acting_identity(request, data.get('raised_by')),
            dispute_type=data['dispute_type'],
            description=data['description'],
            evidence=data.get('evidence')
        )
    except ServiceError as e:
        return error_response(e)

    return Response(DisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['Disputes'],
    summary='Dispute statistics',
    parameters=[StatisticsQuerySerializer],
    responses={200: OpenApiResponse(description='Counts by status and type, average resolution time in hours')}
)
@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def dispute_statistics(request):
    serializer = StatisticsQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    return Response(dispute_service.get_statistics(serializer.validated_data.get('split_id')))


@extend_schema(tags=['Disputes'], summary='Get dispute details')
class DisputeDetailView(generics.RetrieveAPIView):
    """
    Get dispute details.
    Only split participants and staff can view.
    """
    serializer_class = DisputeDetailSerializer
    permission_classes = [permissions.IsAuthenticated, IsDisputeParticipant]
    queryset = Dispute.objects.prefetch_related('status_logs')


@extend_schema(
    tags=['Disputes'],
    summary='Add evidence to a dispute',
    description='Images and receipts are appended. While open, only the raiser can add evidence.',
    request=AddEvidenceSerializer,
    responses={200: DisputeSerializer}
)
@api_view(['PATCH'])
@permission_classes([permissions.IsAuthenticated])
def add_evidence(request, pk):
    serializer = AddEvidenceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        dispute = dispute_service.add_evidence(
            pk,
            evidence=serializer.validated_data['evidence'],
            actor_identity=acting_identity(request, serializer.validated_data.get('actor_identity'))
        )
    except ServiceError as e:
        return error_response(e)

    return Response(DisputeSerializer(dispute).data)


@extend_schema(
    tags=['Disputes'],
    summary='Appeal a resolved or rejected dispute',
    description='Creates a new dispute chained to this one and re-freezes the split. At most 2 appeals.',
    request=AppealDisputeSerializer,
    responses={201: DisputeSerializer}
)
@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def appeal_dispute(request, pk):
    serializer = AppealDisputeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        appeal = dispute_service.appeal_dispute(
            pk,
            appealed_by=acting_identity(request, data.get('appealed_by')),
            appeal_reason=data['appeal_reason'],
            additional_evidence=data.get('additional_evidence')
        )
    except ServiceError as e:
        return error_response(e)

    return Response(DisputeSerializer(appeal).data, status=status.HTTP_201_CREATED)


# ===== ADMIN DECISION ENDPOINTS =====

@extend_schema(
    tags=['Admin - Disputes'],
    summary='Admin: Update dispute status',
    request=UpdateStatusSerializer,
    responses={200: DisputeSerializer}
)
@api_view(['PATCH'])
@permission_classes([IsAdminUser])
def update_status(request, pk):
    serializer = UpdateStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        dispute = dispute_service.update_status(
            pk,
            serializer.validated_data['status'],
            changed_by=request.user.get_username()
        )
    except ServiceError as e:
        return error_response(e)

    return Response(DisputeSerializer(dispute).data)


@extend_schema(
    tags=['Admin - Disputes'],
    summary='Admin: Resolve dispute',
    description='Unfreezes the split and applies any amount adjustments.',
    request=ResolveDisputeSerializer,
    responses={200: DisputeSerializer}
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def resolve_dispute(request, pk):
    serializer = ResolveDisputeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        dispute = dispute_service.resolve_dispute(
            pk,
            decision=data['decision'],
            reasoning=data['reasoning'],
            resolved_by=acting_identity(request, data.get('resolved_by')),
            adjustments=data.get('adjustments'),
            compensations=data.get('compensations')
        )
    except ServiceError as e:
        return error_response(e)

    return Response(DisputeSerializer(dispute).data)


@extend_schema(
    tags=['Admin - Disputes'],
    summary='Admin: Reject dispute',
    request=RejectDisputeSerializer,
    responses={200: DisputeSerializer}
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def reject_dispute(request, pk):
    serializer = RejectDisputeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        dispute = dispute_service.reject_dispute(
            pk,
            reasoning=data['reasoning'],
            rejected_by=acting_identity(request, data.get('rejected_by'))
        )
    except ServiceError as e:
        return error_response(e)

    return Response(DisputeSerializer(dispute).data)


@extend_schema(
    tags=['Admin - Disputes'],
    summary='Admin: Move stale open disputes to review',
    request=None,
    responses={200: OpenApiResponse(description='{"examined": n, "promoted": [...], "failed": [...]}')}
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def auto_resolve(request):
    report = AutoResolutionSweeper(dispute_service=dispute_service).run()
    return Response(report.to_dict())
