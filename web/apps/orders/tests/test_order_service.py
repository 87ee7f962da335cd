"""Unit tests for the OrderService lifecycle.

Every collaborator is the in-process adapter from the ``market`` fixture,
so checkout, compensation and the status machine run deterministically,
including under threads.
"""

import threading

import pytest

from apps.common.errors import (
    Conflict,
    EmptyCart,
    Forbidden,
    InsufficientStock,
    InsufficientTokens,
    InvalidPickupTime,
    InvalidTransition,
    LimitExceeded,
    NotFound,
)
from apps.notifications.domain import Category
from apps.orders.cart import CartLine
from apps.orders.domain import OrderStatus

from conftest import NOW, PICKUP, STAFF_ID


def _order(market, sid, *lines):
    return market.order_service.create_order(sid, [CartLine(i, q) for i, q in lines], PICKUP)


def test_create_order_happy_path(market):
    sid = market.student(balance=3, email="ana@example.edu")
    rice = market.add_item(name="Rice", quantity=5)
    soap = market.add_item(name="Soap", quantity=2)

    order = _order(market, sid, (rice.id, 2), (soap.id, 1))

    assert order.status == OrderStatus.PENDING
    assert order.tokens_charged == 2
    assert [l.name for l in order.lines] == ["Rice", "Soap"]
    assert order.created_at == NOW
    assert market.inventory.available(rice.id) == 3
    assert market.inventory.available(soap.id) == 1
    assert market.tokens.balance(sid) == 1
    assert market.order_service.get_order(order.id).student_id == sid

    staff_inbox = market.inbox(STAFF_ID)
    assert [n.message for n in staff_inbox] == ["New order received from ana@example.edu."]
    assert staff_inbox[0].category == Category.ORDER
    assert staff_inbox[0].related_id == order.id


def test_insufficient_tokens_releases_every_reservation(market):
    sid = market.student(balance=1)
    a = market.add_item(name="A", quantity=5)
    b = market.add_item(name="B", quantity=5)

    with pytest.raises(InsufficientTokens):
        _order(market, sid, (a.id, 1), (b.id, 1))

    assert market.inventory.available(a.id) == 5
    assert market.inventory.available(b.id) == 5
    assert market.tokens.balance(sid) == 1
    assert market.orders.list() == []
    assert market.inbox(STAFF_ID) == []


def test_student_without_account_cannot_pay(market):
    a = market.add_item(quantity=5)
    with pytest.raises(InsufficientTokens):
        _order(market, "ghost", (a.id, 1))
    assert market.inventory.available(a.id) == 5


def test_failed_reservation_releases_earlier_lines(market, monkeypatch):
    sid = market.student(balance=3)
    a = market.add_item(name="A", quantity=5)
    b = market.add_item(name="B", quantity=5)

    real_reserve = market.inventory.reserve

    def reserve(item_id, quantity):
        if item_id == b.id:
            raise InsufficientStock("taken meanwhile")
        return real_reserve(item_id, quantity)

    monkeypatch.setattr(market.inventory, "reserve", reserve)

    with pytest.raises(InsufficientStock):
        _order(market, sid, (a.id, 1), (b.id, 1))
    assert market.inventory.available(a.id) == 5
    assert market.tokens.balance(sid) == 3


def test_persist_failure_refunds_and_releases(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    market.orders.fail_on_add = True

    with pytest.raises(RuntimeError):
        _order(market, sid, (a.id, 2))

    assert market.inventory.available(a.id) == 5
    assert market.tokens.balance(sid) == 3


def test_validation_runs_before_anything_moves(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    b = market.add_item(quantity=5)

    with pytest.raises(LimitExceeded):
        _order(market, sid, (a.id, 2), (b.id, 2))
    with pytest.raises(EmptyCart):
        _order(market, sid)
    with pytest.raises(InvalidPickupTime):
        market.order_service.create_order(sid, [CartLine(a.id, 1)], PICKUP.replace(minute=5))

    assert market.inventory.available(a.id) == 5
    assert market.tokens.balance(sid) == 3


def test_two_students_race_for_the_last_unit(market):
    s1 = market.student("s-1", balance=3)
    s2 = market.student("s-2", balance=3)
    item = market.add_item(quantity=1)
    barrier = threading.Barrier(2)
    outcomes = {}

    def checkout(sid):
        barrier.wait()
        try:
            _order(market, sid, (item.id, 1))
            outcomes[sid] = "ok"
        except InsufficientStock:
            outcomes[sid] = "short"

    threads = [threading.Thread(target=checkout, args=(sid,)) for sid in (s1, s2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes.values()) == ["ok", "short"]
    assert market.inventory.available(item.id) == 0
    loser = next(sid for sid, o in outcomes.items() if o == "short")
    assert market.tokens.balance(loser) == 3
    assert len(market.orders.list()) == 1


def test_staff_walk_the_order_to_completed(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))

    ready = market.order_service.update_status(order.id, OrderStatus.READY, actor_is_staff=True)
    assert ready.status == OrderStatus.READY
    done = market.order_service.update_status(order.id, OrderStatus.COMPLETED, actor_is_staff=True)
    assert done.status == OrderStatus.COMPLETED

    messages = [n.message for n in market.inbox(sid) if n.category == Category.ORDER]
    assert any("ready for pickup" in m for m in messages)
    assert any("marked as completed" in m for m in messages)


def test_students_cannot_change_status(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))

    with pytest.raises(Forbidden):
        market.order_service.update_status(order.id, OrderStatus.READY, actor_is_staff=False)


@pytest.mark.parametrize("target", [OrderStatus.COMPLETED, OrderStatus.PENDING, OrderStatus.CANCELLED])
def test_illegal_transitions_from_pending(market, target):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))

    with pytest.raises(InvalidTransition):
        market.order_service.update_status(order.id, target, actor_is_staff=True)
    assert market.order_service.get_order(order.id).status == OrderStatus.PENDING


def test_status_of_unknown_order(market):
    with pytest.raises(NotFound):
        market.order_service.update_status("missing", OrderStatus.READY, actor_is_staff=True)


def test_cancel_restores_stock_and_tokens(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    b = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 2), (b.id, 1))

    cancelled = market.order_service.cancel(order.id, sid)

    assert cancelled.status == OrderStatus.CANCELLED
    assert market.inventory.available(a.id) == 5
    assert market.inventory.available(b.id) == 5
    assert market.tokens.balance(sid) == 3
    assert any("cancelled" in n.message for n in market.inbox(sid))
    assert any("cancelled by the student" in n.message for n in market.inbox(STAFF_ID))


def test_cancel_twice_is_a_no_op(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))

    market.order_service.cancel(order.id, sid)
    again = market.order_service.cancel(order.id, sid)

    assert again.status == OrderStatus.CANCELLED
    assert market.tokens.balance(sid) == 3
    assert market.inventory.available(a.id) == 5


def test_ready_orders_can_be_cancelled_by_staff(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))
    market.order_service.update_status(order.id, OrderStatus.READY, actor_is_staff=True)

    market.order_service.cancel(order.id, STAFF_ID)

    assert market.tokens.balance(sid) == 3
    assert any("cancelled by staff" in n.message for n in market.inbox(STAFF_ID))


def test_completed_orders_cannot_be_cancelled(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))
    market.order_service.update_status(order.id, OrderStatus.READY, actor_is_staff=True)
    market.order_service.update_status(order.id, OrderStatus.COMPLETED, actor_is_staff=True)

    with pytest.raises(InvalidTransition):
        market.order_service.cancel(order.id, sid)
    assert market.tokens.balance(sid) == 2


def test_only_owner_or_staff_cancel(market):
    owner = market.student("s-1", balance=3)
    other = market.student("s-2", balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, owner, (a.id, 1))

    with pytest.raises(Forbidden):
        market.order_service.cancel(order.id, other)


def test_cancel_skips_deleted_items(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=5)
    order = _order(market, sid, (a.id, 1))
    market.catalog.delete_item(a.id)

    market.order_service.cancel(order.id, sid)
    assert market.tokens.balance(sid) == 3


def test_cancel_racing_status_update_has_one_winner(market):
    sid = market.student(balance=3)
    a = market.add_item(quantity=20)

    for _ in range(10):
        order = _order(market, sid, (a.id, 1))
        market.order_service.update_status(order.id, OrderStatus.READY, actor_is_staff=True)
        barrier = threading.Barrier(2)
        errors = []

        def cancel():
            barrier.wait()
            try:
                market.order_service.cancel(order.id, sid)
            except InvalidTransition as e:
                errors.append(e)

        def complete():
            barrier.wait()
            try:
                market.order_service.update_status(order.id, OrderStatus.COMPLETED, actor_is_staff=True)
            except InvalidTransition as e:
                errors.append(e)

        threads = [threading.Thread(target=cancel), threading.Thread(target=complete)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = market.order_service.get_order(order.id).status
        assert len(errors) == 1
        assert final in (OrderStatus.CANCELLED, OrderStatus.COMPLETED)
        if final == OrderStatus.CANCELLED:
            # refund applied exactly once
            assert market.tokens.balance(sid) == 3
        else:
            market.tokens.credit(sid, 1)
        assert market.tokens.balance(sid) == 3


def test_listing(market):
    s1 = market.student("s-1", balance=3)
    s2 = market.student("s-2", balance=3)
    a = market.add_item(quantity=10)
    first = _order(market, s1, (a.id, 1))
    _order(market, s2, (a.id, 1))
    market.order_service.cancel(first.id, s1)

    assert [o.id for o in market.order_service.list_for_student(s1)] == [first.id]
    assert len(market.order_service.list_orders()) == 2
    assert len(market.order_service.list_orders("pending")) == 1


def _losing_cas(market, monkeypatch, item_id, losses):
    real_cas = market.items.compare_and_set_quantity
    left = {"n": losses}

    def cas(target, expected_version, quantity):
        if target == item_id and left["n"]:
            left["n"] -= 1
            return False
        return real_cas(target, expected_version, quantity)

    monkeypatch.setattr(market.items, "compare_and_set_quantity", cas)


def test_cancel_outlasts_a_contended_release(market, retry_policy, monkeypatch):
    sid = market.student(balance=3)
    a = market.add_item(name="A", quantity=5)
    b = market.add_item(name="B", quantity=5)
    order = _order(market, sid, (a.id, 1), (b.id, 1))
    # one full ledger retry budget lost on B
    _losing_cas(market, monkeypatch, b.id, retry_policy.max_attempts)

    cancelled = market.order_service.cancel(order.id, sid)

    assert cancelled.status == OrderStatus.CANCELLED
    assert market.inventory.available(a.id) == 5
    assert market.inventory.available(b.id) == 5
    assert market.tokens.balance(sid) == 3


def test_stuck_release_does_not_skip_the_refund(market, monkeypatch):
    sid = market.student(balance=3)
    a = market.add_item(name="A", quantity=5)
    b = market.add_item(name="B", quantity=5)
    order = _order(market, sid, (a.id, 1), (b.id, 1))
    market.order_service.compensation_rounds = 2
    _losing_cas(market, monkeypatch, b.id, 10_000)

    with pytest.raises(Conflict):
        market.order_service.cancel(order.id, sid)

    assert market.order_service.get_order(order.id).status == OrderStatus.CANCELLED
    assert market.inventory.available(a.id) == 5
    assert market.tokens.balance(sid) == 3


def test_failed_refund_still_releases_every_line(market, monkeypatch):
    sid = market.student(balance=3)
    a = market.add_item(name="A", quantity=5)
    b = market.add_item(name="B", quantity=5)
    order = _order(market, sid, (a.id, 1), (b.id, 1))

    def credit(student_id, amount):
        raise RuntimeError("ledger offline")

    monkeypatch.setattr(market.tokens, "credit", credit)

    with pytest.raises(RuntimeError):
        market.order_service.cancel(order.id, sid)
    assert market.inventory.available(a.id) == 5
    assert market.inventory.available(b.id) == 5
