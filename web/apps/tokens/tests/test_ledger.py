import threading

import pytest

from apps.common.errors import InsufficientTokens, InvalidRange, NotFound


def test_debit_and_credit(market):
    sid = market.student(balance=3)

    assert market.tokens.debit(sid, 2) == 1
    assert market.tokens.credit(sid, 4) == 5
    assert market.tokens.balance(sid) == 5


def test_debit_beyond_balance_leaves_it_untouched(market):
    sid = market.student(balance=1)

    with pytest.raises(InsufficientTokens):
        market.tokens.debit(sid, 2)
    assert market.tokens.balance(sid) == 1


@pytest.mark.parametrize("amount", [0, -3])
def test_amount_must_be_positive(market, amount):
    sid = market.student()
    with pytest.raises(InvalidRange):
        market.tokens.debit(sid, amount)
    with pytest.raises(InvalidRange):
        market.tokens.credit(sid, amount)


def test_unknown_account(market):
    with pytest.raises(NotFound):
        market.tokens.debit("nobody", 1)


def test_open_account_is_idempotent(market):
    assert market.tokens.open_account("s-9", 3) is True
    market.tokens.debit("s-9", 1)
    assert market.tokens.open_account("s-9", 3) is False
    assert market.tokens.balance("s-9") == 2


def test_concurrent_debits_and_credits_are_all_applied(market):
    sid = market.student(balance=50)

    def debit():
        market.tokens.debit(sid, 1)

    def credit():
        market.tokens.credit(sid, 2)

    threads = [threading.Thread(target=debit) for _ in range(30)]
    threads += [threading.Thread(target=credit) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert market.tokens.balance(sid) == 50 - 30 + 20


def test_concurrent_debits_never_go_negative(market):
    sid = market.student(balance=5)
    outcomes = []
    lock = threading.Lock()

    def worker():
        try:
            market.tokens.debit(sid, 1)
            ok = True
        except InsufficientTokens:
            ok = False
        with lock:
            outcomes.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count(True) == 5
    assert market.tokens.balance(sid) == 0
