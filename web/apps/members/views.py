"""HTTP views for member profiles and the staff student roster."""

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.api import IsMember, IsStaff, error_response, validation_error_response
from apps.common.errors import NotFound

from . import providers
from .domain import Role
from .schemas import MemberReadDTO, RegisterDTO


class RegisterView(APIView):
    """Create or refresh the caller's profile after sign-in.

    201 on first registration (students also get their starting tokens),
    200 on later calls.
    """

    permission_classes = [IsMember]

    def post(self, request):
        try:
            dto = RegisterDTO.model_validate(request.data or {})
        except ValidationError as e:
            return validation_error_response(e)
        member, created = providers.get_membership_service().register(
            request.user.user_id, Role(request.user.role), **dto.model_dump()
        )
        return Response(
            MemberReadDTO.from_domain(member).model_dump(mode="json"),
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class MeView(APIView):
    permission_classes = [IsMember]

    def get(self, request):
        member = providers.get_membership_service().get(request.user.user_id)
        if member is None:
            return error_response(NotFound(request.user.user_id))
        return Response(MemberReadDTO.from_domain(member).model_dump(mode="json"), status=200)


class StudentsView(APIView):
    """Student roster with current token balances."""

    permission_classes = [IsStaff]

    def get(self, request):
        roster = providers.get_membership_service().students()
        return Response(
            {
                "results": [
                    {**MemberReadDTO.from_domain(m).model_dump(mode="json"), "balance": balance}
                    for m, balance in roster
                ]
            },
            status=200,
        )
