from apps.common.providers import get_retry_policy
from apps.notifications.providers import get_notification_dispatcher

from .domain import TokenLedger
from .repository import DjangoTokenAccountRepository
from .reset import WeeklyResetJob


def get_token_ledger() -> TokenLedger:
    return TokenLedger(DjangoTokenAccountRepository(), retry=get_retry_policy())


def get_weekly_reset_job() -> WeeklyResetJob:
    return WeeklyResetJob(get_token_ledger(), get_notification_dispatcher())
