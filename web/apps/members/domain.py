"""Member profiles and the staff directory.

Identity (who the caller is, and whether they are a student or staff) is
issued by an external identity provider. The market keeps a small profile
per member so it can fan notifications out to staff and address students
by email. Registering a student for the first time opens their token
account with the starting quota and welcomes them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from apps.notifications.domain import Category, NotificationDispatcher
from apps.tokens.domain import TokenLedger

logger = logging.getLogger("members")


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


@dataclass
class Member:
    user_id: str
    role: Role
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_staff(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class MemberRepository(Protocol):
    def get(self, user_id: str) -> Optional[Member]:
        raise NotImplementedError()

    def save(self, member: Member) -> bool:
        """Insert or update. Returns True when the member was created."""
        raise NotImplementedError()

    def list(self, role: Optional[Role] = None) -> List[Member]:
        raise NotImplementedError()


class MemberDirectory:
    """Read-side of the member registry used by other components.

    Satisfies ``StaffDirectory`` for notification fan-out.
    """

    def __init__(self, members: MemberRepository):
        self.members = members

    def staff_ids(self) -> List[str]:
        return [m.user_id for m in self.members.list(Role.ADMIN)]

    def is_staff(self, user_id: str) -> bool:
        member = self.members.get(user_id)
        return bool(member and member.is_staff)

    def display_name(self, user_id: str) -> str:
        """Email, else full name, else the raw identifier."""
        member = self.members.get(user_id)
        if member is None:
            return user_id
        return member.email or member.full_name or user_id


class MembershipService:
    def __init__(
        self,
        members: MemberRepository,
        ledger: TokenLedger,
        notifier: NotificationDispatcher,
        starting_quota: int = 3,
    ):
        self.members = members
        self.ledger = ledger
        self.notifier = notifier
        self.starting_quota = starting_quota

    def register(
        self,
        user_id: str,
        role: Role,
        email: str = "",
        first_name: str = "",
        last_name: str = "",
    ) -> Tuple[Member, bool]:
        """Create or refresh a member profile.

        A student's token account is opened with the starting quota the
        first time it is seen, together with a welcome notification. Later
        registrations only refresh the profile fields.

        Returns:
            tuple: ``(member, created)``.
        """
        existing = self.members.get(user_id)
        member = Member(
            user_id=user_id,
            role=Role(role),
            email=email,
            first_name=first_name,
            last_name=last_name,
            created_at=existing.created_at if existing else datetime.now(timezone.utc),
        )
        created = self.members.save(member)
        if member.role == Role.STUDENT and self.ledger.open_account(user_id, self.starting_quota):
            self.notifier.emit(
                user_id,
                f"Welcome to the market! You have {self.starting_quota} tokens to start with. Happy shopping!",
                Category.SYSTEM,
                event_key=f"member:{user_id}:welcome",
            )
        logger.info("member registered", extra={"user_id": user_id, "role": member.role.value, "new_member": created})
        return member, created

    def get(self, user_id: str) -> Optional[Member]:
        return self.members.get(user_id)

    def students(self) -> List[Tuple[Member, int]]:
        """Student roster with current token balances."""
        roster = []
        for member in self.members.list(Role.STUDENT):
            account = self.ledger.accounts.get(member.user_id)
            roster.append((member, account.balance if account else 0))
        return roster
