import logging
import threading

import pytest

from apps.common.errors import NotFound
from apps.notifications.adapters import (
    InMemoryNotificationRepository,
    RecordingDelivery,
    StaticStaffDirectory,
)
from apps.notifications.domain import Category, NotificationDispatcher


@pytest.fixture
def staff():
    return StaticStaffDirectory(["staff-1", "staff-2"])


@pytest.fixture
def dispatcher(staff):
    return NotificationDispatcher(InMemoryNotificationRepository(), staff, delivery=RecordingDelivery())


def test_emit_stores_and_pushes(dispatcher):
    n = dispatcher.emit("s-1", "hello", Category.SYSTEM, related_id="x")

    assert n.read is False
    assert dispatcher.list_for_recipient("s-1")[0].id == n.id
    assert [p.id for p in dispatcher.delivery.sent] == [n.id]
    assert dispatcher.unread_count("s-1") == 1


def test_same_event_key_is_stored_once(dispatcher):
    first = dispatcher.emit("s-1", "ready", Category.ORDER, event_key="order:1:ready")
    second = dispatcher.emit("s-1", "ready", Category.ORDER, event_key="order:1:ready")

    assert second.id == first.id
    assert len(dispatcher.list_for_recipient("s-1")) == 1
    assert len(dispatcher.delivery.sent) == 1


def test_event_key_is_scoped_per_recipient(dispatcher):
    dispatcher.emit("s-1", "m", event_key="k")
    dispatcher.emit("s-2", "m", event_key="k")
    assert dispatcher.unread_count("s-1") == dispatcher.unread_count("s-2") == 1


def test_concurrent_emits_of_one_event(dispatcher):
    barrier = threading.Barrier(8)

    def emit():
        barrier.wait()
        dispatcher.emit("s-1", "ready", Category.ORDER, event_key="order:1:ready")

    threads = [threading.Thread(target=emit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(dispatcher.list_for_recipient("s-1")) == 1


def test_fan_out_uses_roster_at_emission_time(dispatcher, staff):
    dispatcher.emit_to_staff("low stock", Category.INVENTORY, event_key="item:1:out-of-stock:3")
    staff.staff.append("staff-3")

    assert dispatcher.unread_count("staff-1") == 1
    assert dispatcher.unread_count("staff-2") == 1
    assert dispatcher.unread_count("staff-3") == 0
    assert len(dispatcher.staff_feed()) == 2


def test_mark_read(dispatcher):
    a = dispatcher.emit("s-1", "a")
    dispatcher.emit("s-1", "b")

    dispatcher.mark_read(a.id)
    assert dispatcher.unread_count("s-1") == 1
    assert [n.message for n in dispatcher.list_for_recipient("s-1", unread_only=True)] == ["b"]

    with pytest.raises(NotFound):
        dispatcher.mark_read("missing")


def test_mark_all_read_is_idempotent(dispatcher):
    dispatcher.emit("s-1", "a")
    dispatcher.emit("s-1", "b")
    dispatcher.emit("s-2", "c")

    assert dispatcher.mark_all_read("s-1") == 2
    assert dispatcher.mark_all_read("s-1") == 0
    assert dispatcher.unread_count("s-2") == 1


def test_failed_push_keeps_the_notification(staff, caplog, monkeypatch):
    # the configured "notifications" logger does not propagate to the root
    monkeypatch.setattr(logging.getLogger("notifications"), "propagate", True)
    dispatcher = NotificationDispatcher(InMemoryNotificationRepository(), staff, delivery=RecordingDelivery(fail=True))

    n = dispatcher.emit("s-1", "hello")

    assert dispatcher.get(n.id) is not None
    assert "notification push failed" in caplog.text


def test_limit(dispatcher):
    for i in range(5):
        dispatcher.emit("s-1", f"m{i}")
    assert len(dispatcher.list_for_recipient("s-1", limit=3)) == 3
