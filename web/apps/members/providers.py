from django.conf import settings

from .domain import MemberDirectory, MembershipService
from .repository import DjangoMemberRepository


def get_member_directory() -> MemberDirectory:
    return MemberDirectory(DjangoMemberRepository())


def get_membership_service() -> MembershipService:
    from apps.notifications.providers import get_notification_dispatcher
    from apps.tokens.providers import get_token_ledger

    return MembershipService(
        members=DjangoMemberRepository(),
        ledger=get_token_ledger(),
        notifier=get_notification_dispatcher(),
        starting_quota=getattr(settings, "TOKEN_WEEKLY_QUOTA", 3),
    )
