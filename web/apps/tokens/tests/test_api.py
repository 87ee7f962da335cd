import pytest

from conftest import as_user
from apps.tokens.models import TokenAccountModel


@pytest.fixture
def account(db):
    return TokenAccountModel.objects.create(student_id="student-1", balance=3)


def test_student_reads_own_balance(client, account, student_headers):
    r = client.get("/api/tokens/student-1/", **student_headers)
    assert r.status_code == 200
    assert r.json() == {"student_id": "student-1", "balance": 3}


def test_student_cannot_read_someone_else(client, account):
    r = client.get("/api/tokens/student-1/", **as_user("student-2"))
    assert r.status_code == 403
    assert r.json()["detail"] == "FORBIDDEN"


def test_staff_debit_and_credit(client, account, staff_headers):
    r = client.post("/api/tokens/student-1/debit/", data={"amount": 2}, content_type="application/json",
                    **staff_headers)
    assert r.json()["balance"] == 1

    r = client.post("/api/tokens/student-1/debit/", data={"amount": 2}, content_type="application/json",
                    **staff_headers)
    assert r.status_code == 402
    assert r.json()["detail"] == "INSUFFICIENT_TOKENS"

    r = client.post("/api/tokens/student-1/credit/", data={"amount": 5}, content_type="application/json",
                    **staff_headers)
    assert r.json()["balance"] == 6


def test_students_cannot_move_tokens(client, account, student_headers):
    r = client.post("/api/tokens/student-1/credit/", data={"amount": 5}, content_type="application/json",
                    **student_headers)
    assert r.status_code == 403


def test_reset_endpoint(client, account, staff_headers):
    TokenAccountModel.objects.filter(student_id="student-1").update(balance=0)

    r = client.post("/api/tokens/reset/", data={}, content_type="application/json", **staff_headers)
    assert r.status_code == 200
    assert r.json() == {"reset": 1, "quota": 3}
    assert TokenAccountModel.objects.get(student_id="student-1").balance == 3
