"""Emergency token requests.

A student who runs out of tokens can ask staff for 1 to 5 more. Each
student may have at most one pending request; staff approve or reject it
once. Approval credits the Token Ledger.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol

from apps.common.errors import AlreadyDecided, DuplicatePending, InvalidRange, NotFound
from apps.notifications.domain import Category, NotificationDispatcher
from apps.tokens.domain import TokenLedger

logger = logging.getLogger("token_requests")


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class TokenRequest:
    id: str
    student_id: str
    reason: str
    tokens_requested: int
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    decided_at: Optional[datetime] = None


class TokenRequestRepository(Protocol):
    def add(self, request: TokenRequest) -> TokenRequest:
        """Store a new pending request.

        Raises:
            DuplicatePending: If the student already has a pending request.
                Implementations enforce this atomically.
        """
        raise NotImplementedError()

    def get(self, request_id: str) -> Optional[TokenRequest]:
        raise NotImplementedError()

    def compare_and_set_status(
        self, request_id: str, expected: RequestStatus, status: RequestStatus, decided_at: Optional[datetime]
    ) -> bool:
        """Write ``status`` only if the stored status is ``expected``.

        Raises:
            DuplicatePending: If ``status`` is pending and the student
                already has another pending request.
        """
        raise NotImplementedError()

    def list(self, student_id: Optional[str] = None, status: Optional[RequestStatus] = None) -> List[TokenRequest]:
        """Newest first."""
        raise NotImplementedError()


class TokenRequestService:
    def __init__(
        self,
        requests: TokenRequestRepository,
        ledger: TokenLedger,
        notifier: NotificationDispatcher,
        display_name=None,
        max_tokens: int = 5,
    ):
        self.requests = requests
        self.ledger = ledger
        self.notifier = notifier
        self.display_name = display_name or (lambda user_id: user_id)
        self.max_tokens = max_tokens

    def submit(self, student_id: str, reason: str, tokens_requested: int) -> TokenRequest:
        """File a request for extra tokens and tell staff about it.

        Raises:
            InvalidRange: If ``tokens_requested`` is outside 1..max or the
                reason is blank.
            DuplicatePending: If the student already has a pending request.
        """
        if not 1 <= tokens_requested <= self.max_tokens:
            raise InvalidRange(f"tokens_requested {tokens_requested}")
        if not reason or not reason.strip():
            raise InvalidRange("reason is blank")

        request = self.requests.add(
            TokenRequest(
                id=str(uuid.uuid4()),
                student_id=student_id,
                reason=reason.strip(),
                tokens_requested=tokens_requested,
            )
        )
        logger.info(
            "token request submitted",
            extra={"request_id": request.id, "student_id": student_id, "tokens": tokens_requested},
        )
        self.notifier.emit_to_staff(
            f"New token request from {self.display_name(student_id)} for {tokens_requested} tokens.",
            Category.TOKEN,
            related_id=request.id,
            event_key=f"token-request:{request.id}:submitted",
        )
        return request

    def decide(self, request_id: str, outcome: RequestStatus) -> TokenRequest:
        """Approve or reject a pending request.

        The status write is conditional on the request still being pending,
        so two racing decisions cannot both succeed. On approval the tokens
        are credited after the status is claimed; if the credit fails the
        request goes back to pending (see ``_reopen``) and the error
        propagates.

        Raises:
            InvalidRange: If ``outcome`` is not approved/rejected.
            NotFound: If the request does not exist.
            AlreadyDecided: If the request is no longer pending.
        """
        outcome = RequestStatus(outcome)
        if outcome == RequestStatus.PENDING:
            raise InvalidRange("outcome must be approved or rejected")

        request = self.requests.get(request_id)
        if request is None:
            raise NotFound(f"token request {request_id}")
        if request.status != RequestStatus.PENDING:
            raise AlreadyDecided(request_id)

        decided_at = datetime.now(timezone.utc)
        if not self.requests.compare_and_set_status(request_id, RequestStatus.PENDING, outcome, decided_at):
            raise AlreadyDecided(request_id)

        if outcome == RequestStatus.APPROVED:
            try:
                self.ledger.credit(request.student_id, request.tokens_requested)
            except Exception:
                self._reopen(request, outcome, decided_at)
                raise
            message = f"Your request for {request.tokens_requested} additional tokens has been approved!"
        else:
            message = f"Your request for {request.tokens_requested} additional tokens has been rejected."

        self.notifier.emit(
            request.student_id,
            message,
            Category.TOKEN,
            related_id=request_id,
            event_key=f"token-request:{request_id}:{outcome.value}",
        )
        logger.info("token request decided", extra={"request_id": request_id, "outcome": outcome.value})
        request.status = outcome
        request.decided_at = decided_at
        return request

    def _reopen(self, request: TokenRequest, outcome: RequestStatus, decided_at: datetime) -> None:
        """Undo a claimed approval whose credit failed.

        The request goes back to pending unless the student filed a new
        one meanwhile; then it is closed as rejected, so the student still
        has a single pending request.
        """
        try:
            self.requests.compare_and_set_status(request.id, outcome, RequestStatus.PENDING, None)
        except DuplicatePending:
            logger.warning(
                "approval undone, newer request pending",
                extra={"request_id": request.id, "student_id": request.student_id},
            )
            self.requests.compare_and_set_status(request.id, outcome, RequestStatus.REJECTED, decided_at)

    def get(self, request_id: str) -> TokenRequest:
        request = self.requests.get(request_id)
        if request is None:
            raise NotFound(f"token request {request_id}")
        return request

    def list_for_student(self, student_id: str) -> List[TokenRequest]:
        return self.requests.list(student_id=student_id)

    def list_requests(self, status: Optional[RequestStatus] = None) -> List[TokenRequest]:
        return self.requests.list(status=RequestStatus(status) if status else None)
