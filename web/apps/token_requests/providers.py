from django.conf import settings

from apps.members.providers import get_member_directory
from apps.notifications.providers import get_notification_dispatcher
from apps.tokens.providers import get_token_ledger

from .domain import TokenRequestService
from .repository import DjangoTokenRequestRepository


def get_token_request_service() -> TokenRequestService:
    return TokenRequestService(
        requests=DjangoTokenRequestRepository(),
        ledger=get_token_ledger(),
        notifier=get_notification_dispatcher(),
        display_name=get_member_directory().display_name,
        max_tokens=getattr(settings, "TOKEN_REQUEST_MAX", 5),
    )
