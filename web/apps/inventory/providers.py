from apps.common.providers import get_retry_policy
from apps.notifications.providers import get_notification_dispatcher

from .domain import InventoryCatalog, InventoryLedger
from .repository import DjangoItemRepository


def get_inventory_ledger() -> InventoryLedger:
    return InventoryLedger(DjangoItemRepository(), get_notification_dispatcher(), retry=get_retry_policy())


def get_inventory_catalog() -> InventoryCatalog:
    items = DjangoItemRepository()
    ledger = InventoryLedger(items, get_notification_dispatcher(), retry=get_retry_policy())
    return InventoryCatalog(items, ledger)
