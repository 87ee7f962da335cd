"""API tests for checkout and the order lifecycle endpoints.

They run the real providers over the test database: items, token accounts
and members are created through the ORM first.
"""

import pytest
from django.utils import timezone

from apps.inventory.models import ItemModel
from apps.members.models import MemberModel
from apps.orders.providers import get_pickup_window
from apps.tokens.models import TokenAccountModel

from conftest import STAFF_ID, as_user

ORDERS_URL = "/api/orders/"


def pickup_slot() -> str:
    return get_pickup_window().slots(timezone.now())[-1].isoformat()


@pytest.fixture
def stocked(db):
    MemberModel.objects.create(user_id=STAFF_ID, role="admin", email="desk@example.edu", created_at=timezone.now())
    MemberModel.objects.create(user_id="student-1", role="student", created_at=timezone.now())
    TokenAccountModel.objects.create(student_id="student-1", balance=3)
    rice = ItemModel.objects.create(name="Rice", category="food", quantity=5)
    soap = ItemModel.objects.create(name="Soap", category="hygiene", quantity=1)
    return {"rice": str(rice.id), "soap": str(soap.id)}


def _checkout(client, headers, *lines, **extra):
    payload = {"items": [{"item_id": i, "quantity": q} for i, q in lines], "pickup_time": pickup_slot()}
    return client.post(ORDERS_URL, data=payload, content_type="application/json", **headers, **extra)


def test_create_order(client, stocked, student_headers):
    r = _checkout(client, student_headers, (stocked["rice"], 2), (stocked["soap"], 1))

    assert r.status_code == 201, r.content
    body = r.json()
    assert body["status"] == "pending"
    assert body["tokens_charged"] == 2
    assert [l["name"] for l in body["lines"]] == ["Rice", "Soap"]
    assert ItemModel.objects.get(id=stocked["rice"]).quantity == 3
    assert TokenAccountModel.objects.get(student_id="student-1").balance == 1


def test_create_order_insufficient_tokens(client, stocked, student_headers):
    TokenAccountModel.objects.filter(student_id="student-1").update(balance=1)

    r = _checkout(client, student_headers, (stocked["rice"], 1), (stocked["soap"], 1))

    assert r.status_code == 402
    assert r.json()["detail"] == "INSUFFICIENT_TOKENS"
    assert ItemModel.objects.get(id=stocked["soap"]).quantity == 1


@pytest.mark.parametrize(
    "lines, code, status",
    [
        ([("rice", 4)], "LIMIT_EXCEEDED", 422),
        ([("soap", 2)], "INSUFFICIENT_STOCK", 422),
        ([("rice", 1), ("rice", 1)], "DUPLICATE_ITEM", 422),
        ([], "EMPTY_CART", 422),
    ],
)
def test_cart_rules(client, stocked, student_headers, lines, code, status):
    r = _checkout(client, student_headers, *[(stocked[k], q) for k, q in lines])
    assert r.status_code == status
    assert r.json()["detail"] == code
    assert r.json()["message"]


def test_bad_payload_and_bad_slot(client, stocked, student_headers):
    r = client.post(ORDERS_URL, data={"items": "nope"}, content_type="application/json", **student_headers)
    assert r.status_code == 400

    payload = {"items": [{"item_id": stocked["rice"], "quantity": 1}], "pickup_time": "2001-01-01T10:00:00+00:00"}
    r = client.post(ORDERS_URL, data=payload, content_type="application/json", **student_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "INVALID_PICKUP_TIME"


def test_lifecycle_and_visibility(client, stocked, student_headers, staff_headers):
    order = _checkout(client, student_headers, (stocked["rice"], 1)).json()
    url = f"{ORDERS_URL}{order['id']}/"

    assert client.get(url, **student_headers).status_code == 200
    assert client.get(url, **as_user("student-2")).status_code == 403

    r = client.post(f"{url}status/", data={"status": "ready"}, content_type="application/json", **student_headers)
    assert r.status_code == 403

    r = client.post(f"{url}status/", data={"status": "completed"}, content_type="application/json", **staff_headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "INVALID_TRANSITION"

    r = client.post(f"{url}status/", data={"status": "ready"}, content_type="application/json", **staff_headers)
    assert r.json()["status"] == "ready"

    r = client.post(f"{url}cancel/", **student_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert ItemModel.objects.get(id=stocked["rice"]).quantity == 5
    assert TokenAccountModel.objects.get(student_id="student-1").balance == 3


def test_list_orders(client, stocked, student_headers, staff_headers):
    _checkout(client, student_headers, (stocked["rice"], 1))

    mine = client.get(ORDERS_URL, **student_headers).json()
    assert mine["count"] == 1
    assert client.get(ORDERS_URL, **as_user("student-2")).json()["count"] == 0
    assert client.get(f"{ORDERS_URL}?status=pending", **staff_headers).json()["count"] == 1
    assert client.get(f"{ORDERS_URL}?status=bogus", **staff_headers).status_code == 400


def test_pickup_slots(client, student_headers):
    r = client.get(f"{ORDERS_URL}pickup-slots/", **student_headers)
    assert r.status_code == 200
    assert r.json()["slots"]


def test_unknown_order(client, db, student_headers):
    r = client.get(f"{ORDERS_URL}00000000-0000-0000-0000-000000000000/", **student_headers)
    assert r.status_code == 404
