"""Django ORM repository for token requests.

The "one pending request per student" rule is a partial unique index; the
insert runs in a savepoint so the ``IntegrityError`` of a duplicate only
rolls back that block and is reported as ``DuplicatePending``.
"""

from datetime import datetime
from typing import List, Optional

from django.db import IntegrityError, transaction

from apps.common.errors import DuplicatePending
from apps.common.ids import as_uuid

from .domain import RequestStatus, TokenRequest, TokenRequestRepository
from .models import TokenRequestModel


def _to_domain(obj: TokenRequestModel) -> TokenRequest:
    return TokenRequest(
        id=str(obj.id),
        student_id=obj.student_id,
        reason=obj.reason,
        tokens_requested=obj.tokens_requested,
        status=RequestStatus(obj.status),
        created_at=obj.created_at,
        decided_at=obj.decided_at,
    )


class DjangoTokenRequestRepository(TokenRequestRepository):
    def add(self, request: TokenRequest) -> TokenRequest:
        try:
            with transaction.atomic():
                obj = TokenRequestModel.objects.create(
                    id=request.id,
                    student_id=request.student_id,
                    reason=request.reason,
                    tokens_requested=request.tokens_requested,
                    status=request.status.value,
                    created_at=request.created_at,
                )
        except IntegrityError:
            raise DuplicatePending(request.student_id)
        return _to_domain(obj)

    def get(self, request_id: str) -> Optional[TokenRequest]:
        if as_uuid(request_id) is None:
            return None
        obj = TokenRequestModel.objects.filter(id=request_id).first()
        return _to_domain(obj) if obj else None

    def compare_and_set_status(
        self, request_id: str, expected: RequestStatus, status: RequestStatus, decided_at: Optional[datetime]
    ) -> bool:
        if as_uuid(request_id) is None:
            return False
        try:
            with transaction.atomic():
                updated = TokenRequestModel.objects.filter(id=request_id, status=expected.value).update(
                    status=status.value, decided_at=decided_at
                )
        except IntegrityError:
            raise DuplicatePending(request_id)
        return updated == 1

    def list(self, student_id: Optional[str] = None, status: Optional[RequestStatus] = None) -> List[TokenRequest]:
        qs = TokenRequestModel.objects.all()
        if student_id is not None:
            qs = qs.filter(student_id=student_id)
        if status is not None:
            qs = qs.filter(status=status.value)
        return [_to_domain(o) for o in qs.order_by("-created_at")]
