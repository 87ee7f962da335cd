"""Shared fixtures.

``market`` wires every component over the in-process adapters, with a
fixed clock and a retry budget large enough for the threaded tests. API
tests use the Django test client with the gateway identity headers.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from apps.common.retry import RetryPolicy
from apps.inventory.adapters import InMemoryItemRepository
from apps.inventory.domain import Category, InventoryCatalog, InventoryLedger
from apps.members.adapters import InMemoryMemberRepository
from apps.members.domain import MemberDirectory, MembershipService, Role
from apps.notifications.adapters import InMemoryNotificationRepository, RecordingDelivery
from apps.notifications.domain import NotificationDispatcher
from apps.orders.adapters import InMemoryOrderRepository
from apps.orders.cart import CartValidator
from apps.orders.domain import OrderService
from apps.orders.pickup import PickupWindow
from apps.token_requests.adapters import InMemoryTokenRequestRepository
from apps.token_requests.domain import TokenRequestService
from apps.tokens.adapters import InMemoryTokenAccountRepository
from apps.tokens.domain import TokenLedger
from apps.tokens.reset import WeeklyResetJob

# Monday morning, before the desk opens
NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
PICKUP = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
STAFF_ID = "staff-1"


@pytest.fixture(autouse=True)
def fast_and_offline(settings):
    settings.USE_HTTP_DELIVERY = False
    settings.LEDGER_RETRY_BACKOFF_BASE = 0.0
    settings.HTTP_RETRY_BACKOFF_BASE = 0.0


@dataclass
class Market:
    items: InMemoryItemRepository
    accounts: InMemoryTokenAccountRepository
    orders: InMemoryOrderRepository
    requests: InMemoryTokenRequestRepository
    notifications: InMemoryNotificationRepository
    members: InMemoryMemberRepository
    delivery: RecordingDelivery
    directory: MemberDirectory
    notifier: NotificationDispatcher
    inventory: InventoryLedger
    catalog: InventoryCatalog
    tokens: TokenLedger
    validator: CartValidator
    order_service: OrderService
    request_service: TokenRequestService
    membership: MembershipService
    reset_job: WeeklyResetJob

    def add_item(self, name="Rice", quantity=10, category=Category.FOOD):
        return self.catalog.add_item(name=name, category=category, quantity=quantity)

    def student(self, user_id="student-1", balance=3, email=""):
        self.membership.register(user_id, Role.STUDENT, email=email)
        if balance != self.tokens.balance(user_id):
            self.tokens.set_balance(user_id, balance)
        return user_id

    def inbox(self, recipient_id):
        return self.notifier.list_for_recipient(recipient_id, limit=100)


@pytest.fixture
def retry_policy():
    return RetryPolicy(max_attempts=200, backoff_base=0.0, max_sleep=0.0)


@pytest.fixture
def market(retry_policy):
    items = InMemoryItemRepository()
    accounts = InMemoryTokenAccountRepository()
    orders = InMemoryOrderRepository()
    requests = InMemoryTokenRequestRepository()
    notifications = InMemoryNotificationRepository()
    members = InMemoryMemberRepository()
    delivery = RecordingDelivery()

    directory = MemberDirectory(members)
    notifier = NotificationDispatcher(notifications, directory, delivery=delivery)
    inventory = InventoryLedger(items, notifier, retry=retry_policy)
    tokens = TokenLedger(accounts, retry=retry_policy)
    validator = CartValidator(items, max_items=3)
    membership = MembershipService(members, tokens, notifier, starting_quota=3)
    membership.register(STAFF_ID, Role.ADMIN, email="desk@example.edu")

    return Market(
        items=items,
        accounts=accounts,
        orders=orders,
        requests=requests,
        notifications=notifications,
        members=members,
        delivery=delivery,
        directory=directory,
        notifier=notifier,
        inventory=inventory,
        catalog=InventoryCatalog(items, inventory),
        tokens=tokens,
        validator=validator,
        order_service=OrderService(
            orders=orders,
            validator=validator,
            inventory=inventory,
            tokens=tokens,
            notifier=notifier,
            members=directory,
            pickup=PickupWindow(),
            retry=retry_policy,
            clock=lambda: NOW,
        ),
        request_service=TokenRequestService(
            requests, tokens, notifier, display_name=directory.display_name, max_tokens=5
        ),
        membership=membership,
        reset_job=WeeklyResetJob(tokens, notifier, clock=lambda: NOW),
    )


# ---- API helpers ----
def as_user(user_id, role="student"):
    """Gateway identity headers for the Django test client."""
    return {"HTTP_X_USER_ID": user_id, "HTTP_X_USER_ROLE": role}


@pytest.fixture
def student_headers():
    return as_user("student-1")


@pytest.fixture
def staff_headers():
    return as_user(STAFF_ID, "admin")
