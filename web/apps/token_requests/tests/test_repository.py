import uuid
from datetime import datetime, timezone

import pytest

from apps.common.errors import DuplicatePending
from apps.token_requests.domain import RequestStatus, TokenRequest
from apps.token_requests.repository import DjangoTokenRequestRepository


def _request(student_id="s-1"):
    return TokenRequest(id=str(uuid.uuid4()), student_id=student_id, reason="exams", tokens_requested=2)


@pytest.mark.django_db
def test_second_pending_request_is_refused_by_the_database():
    repo = DjangoTokenRequestRepository()
    repo.add(_request())

    with pytest.raises(DuplicatePending):
        repo.add(_request())
    assert len(repo.list(student_id="s-1")) == 1


@pytest.mark.django_db
def test_decided_requests_do_not_block_new_ones():
    repo = DjangoTokenRequestRepository()
    first = repo.add(_request())
    assert repo.compare_and_set_status(first.id, RequestStatus.PENDING, RequestStatus.APPROVED,
                                       datetime.now(timezone.utc))

    repo.add(_request())
    assert len(repo.list(student_id="s-1")) == 2


@pytest.mark.django_db
def test_status_write_only_from_expected_status():
    repo = DjangoTokenRequestRepository()
    request = repo.add(_request())
    now = datetime.now(timezone.utc)

    assert repo.compare_and_set_status(request.id, RequestStatus.PENDING, RequestStatus.REJECTED, now)
    assert not repo.compare_and_set_status(request.id, RequestStatus.PENDING, RequestStatus.APPROVED, now)
    assert repo.get(request.id).status == RequestStatus.REJECTED
    assert repo.get("junk") is None


@pytest.mark.django_db
def test_reopening_is_refused_while_another_request_is_pending():
    repo = DjangoTokenRequestRepository()
    first = repo.add(_request())
    now = datetime.now(timezone.utc)
    repo.compare_and_set_status(first.id, RequestStatus.PENDING, RequestStatus.APPROVED, now)
    repo.add(_request())

    with pytest.raises(DuplicatePending):
        repo.compare_and_set_status(first.id, RequestStatus.APPROVED, RequestStatus.PENDING, None)
    assert repo.get(first.id).status == RequestStatus.APPROVED
    assert len(repo.list(student_id="s-1", status=RequestStatus.PENDING)) == 1
