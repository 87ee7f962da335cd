import pytest

from apps.members.models import MemberModel
from apps.notifications.models import NotificationModel
from apps.tokens.models import TokenAccountModel

from conftest import STAFF_ID, as_user

URL = "/api/members/"


@pytest.mark.django_db
def test_register_student(client, student_headers):
    r = client.post(URL, data={"email": "ana@example.edu"}, content_type="application/json", **student_headers)
    assert r.status_code == 201
    assert r.json()["role"] == "student"
    assert TokenAccountModel.objects.get(student_id="student-1").balance == 3
    assert NotificationModel.objects.filter(recipient_id="student-1").count() == 1

    r = client.post(URL, data={"first_name": "Ana"}, content_type="application/json", **student_headers)
    assert r.status_code == 200
    assert TokenAccountModel.objects.get(student_id="student-1").balance == 3
    assert NotificationModel.objects.filter(recipient_id="student-1").count() == 1


@pytest.mark.django_db
def test_register_staff(client, staff_headers):
    r = client.post(URL, data={}, content_type="application/json", **staff_headers)
    assert r.status_code == 201
    assert MemberModel.objects.get(user_id=STAFF_ID).role == "admin"
    assert not TokenAccountModel.objects.filter(student_id=STAFF_ID).exists()


@pytest.mark.django_db
def test_unknown_role_header_registers_a_student(client):
    r = client.post(URL, data={}, content_type="application/json", **as_user("s-9", "superuser"))
    assert r.status_code == 201
    assert r.json()["role"] == "student"


@pytest.mark.django_db
def test_me(client, student_headers):
    assert client.get(f"{URL}me/", **student_headers).status_code == 404
    client.post(URL, data={}, content_type="application/json", **student_headers)
    assert client.get(f"{URL}me/", **student_headers).json()["user_id"] == "student-1"


@pytest.mark.django_db
def test_student_roster_is_staff_only(client, student_headers, staff_headers):
    client.post(URL, data={}, content_type="application/json", **student_headers)

    assert client.get(f"{URL}students/", **student_headers).status_code == 403
    rows = client.get(f"{URL}students/", **staff_headers).json()["results"]
    assert [(r["user_id"], r["balance"]) for r in rows] == [("student-1", 3)]


@pytest.mark.django_db
def test_bad_profile(client, student_headers):
    r = client.post(URL, data={"email": "x" * 300}, content_type="application/json", **student_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "VALIDATION_ERROR"
