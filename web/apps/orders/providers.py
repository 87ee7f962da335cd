"""Service provider helpers for wiring OrderService with its collaborators.

``get_order_service`` returns an ``OrderService`` backed by the Django ORM
repositories and configured from settings (per-order item limit, pickup
window, ledger retry bounds). Tests swap the whole service by
monkeypatching this symbol, or build one over the in-memory adapters.
"""

from django.conf import settings

from apps.common.providers import get_retry_policy
from apps.inventory.providers import get_inventory_ledger
from apps.inventory.repository import DjangoItemRepository
from apps.members.providers import get_member_directory
from apps.notifications.providers import get_notification_dispatcher
from apps.tokens.providers import get_token_ledger

from .cart import CartValidator
from .domain import OrderService
from .pickup import PickupWindow
from .repository import DjangoOrderRepository


def get_pickup_window() -> PickupWindow:
    return PickupWindow(
        timezone=getattr(settings, "MARKET_PICKUP_TIMEZONE", "UTC"),
        open_hour=getattr(settings, "MARKET_PICKUP_OPEN_HOUR", 9),
        close_hour=getattr(settings, "MARKET_PICKUP_CLOSE_HOUR", 16),
        slot_minutes=getattr(settings, "MARKET_PICKUP_SLOT_MINUTES", 10),
        days_ahead=getattr(settings, "MARKET_PICKUP_DAYS_AHEAD", 5),
    )


def get_order_service() -> OrderService:
    """Return a configured OrderService instance."""
    return OrderService(
        orders=DjangoOrderRepository(),
        validator=CartValidator(DjangoItemRepository(), max_items=getattr(settings, "MARKET_MAX_ITEMS_PER_ORDER", 3)),
        inventory=get_inventory_ledger(),
        tokens=get_token_ledger(),
        notifier=get_notification_dispatcher(),
        members=get_member_directory(),
        pickup=get_pickup_window(),
        retry=get_retry_policy(),
    )
