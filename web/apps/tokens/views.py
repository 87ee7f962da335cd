"""HTTP views for token balances, direct ledger moves and the weekly reset."""

from django.conf import settings
from pydantic import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.api import IsMember, IsStaff, error_response, validation_error_response
from apps.common.errors import Forbidden, MarketError

from . import providers
from .schemas import TokenMoveDTO, WeeklyResetDTO


class BalanceView(APIView):
    """A student reads their own balance; staff read anyone's."""

    permission_classes = [IsMember]

    def get(self, request, student_id):
        try:
            if student_id != request.user.user_id and not request.user.is_staff:
                raise Forbidden(f"balance of {student_id}")
            balance = providers.get_token_ledger().balance(student_id)
        except MarketError as e:
            return error_response(e)
        return Response({"student_id": student_id, "balance": balance}, status=200)


class _TokenMoveView(APIView):
    permission_classes = [IsStaff]
    operation = ""

    def post(self, request, student_id):
        try:
            dto = TokenMoveDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        ledger = providers.get_token_ledger()
        try:
            balance = getattr(ledger, self.operation)(student_id, dto.amount)
        except MarketError as e:
            return error_response(e)
        return Response({"student_id": student_id, "balance": balance}, status=200)


class DebitView(_TokenMoveView):
    operation = "debit"


class CreditView(_TokenMoveView):
    operation = "credit"


class WeeklyResetView(APIView):
    """Run the weekly reset now (the scheduled path is the management command)."""

    permission_classes = [IsStaff]

    def post(self, request):
        try:
            dto = WeeklyResetDTO.model_validate(request.data or {})
        except ValidationError as e:
            return validation_error_response(e)
        quota = dto.quota if dto.quota is not None else getattr(settings, "TOKEN_WEEKLY_QUOTA", 3)
        try:
            count = providers.get_weekly_reset_job().reset_all(quota=quota, run_key=dto.run_key)
        except MarketError as e:
            return error_response(e)
        return Response({"reset": count, "quota": quota}, status=200)
