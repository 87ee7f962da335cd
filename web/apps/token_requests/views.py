"""HTTP views for emergency token requests."""

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.api import IsMember, IsStaff, error_response, validation_error_response
from apps.common.errors import Forbidden, MarketError

from . import providers
from .domain import RequestStatus
from .schemas import DecisionDTO, SubmitRequestDTO, TokenRequestReadDTO


def _request_body(request) -> dict:
    return TokenRequestReadDTO.from_domain(request).model_dump(mode="json")


class TokenRequestsCollectionView(APIView):
    """Students submit and list their own requests; staff list all of them."""

    permission_classes = [IsMember]

    def get(self, request):
        service = providers.get_token_request_service()
        if request.user.is_staff:
            wanted = request.GET.get("status") or None
            if wanted is not None and wanted not in {s.value for s in RequestStatus}:
                return Response({"detail": "INVALID_STATUS"}, status=status.HTTP_400_BAD_REQUEST)
            rows = service.list_requests(wanted)
        else:
            rows = service.list_for_student(request.user.user_id)
        return Response({"results": [_request_body(r) for r in rows]}, status=200)

    def post(self, request):
        try:
            dto = SubmitRequestDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        try:
            if request.user.is_staff:
                raise Forbidden("staff cannot request tokens")
            out = providers.get_token_request_service().submit(
                request.user.user_id, dto.reason, dto.tokens_requested
            )
        except MarketError as e:
            return error_response(e)
        return Response(_request_body(out), status=status.HTTP_201_CREATED)


class TokenRequestDetailView(APIView):
    permission_classes = [IsMember]

    def get(self, request, request_id):
        try:
            out = providers.get_token_request_service().get(str(request_id))
            if out.student_id != request.user.user_id and not request.user.is_staff:
                raise Forbidden(f"token request {request_id}")
        except MarketError as e:
            return error_response(e)
        return Response(_request_body(out), status=200)


class DecisionView(APIView):
    permission_classes = [IsStaff]

    def post(self, request, request_id):
        try:
            dto = DecisionDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        try:
            out = providers.get_token_request_service().decide(str(request_id), RequestStatus(dto.outcome))
        except MarketError as e:
            return error_response(e)
        return Response(_request_body(out), status=200)
