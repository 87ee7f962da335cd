"""Idempotency utilities for safely handling duplicate checkout requests.

This module stores and retrieves idempotency keys to safely de-duplicate
client requests. It supports creating an idempotent record, detecting
conflicts when the same key is used with a different payload, and
finalizing a stored response so subsequent retries can short-circuit.

Keys are scoped per student: the stored key is ``<student_id>:<key>``.
"""

import hashlib, json
from django.db import transaction, IntegrityError

from apps.common.errors import Conflict, IdempotencyConflict

from .models import IdempotencyKey


def _hash(payload: dict) -> str:
    """Compute a stable SHA-256 hash for a JSON-serializable payload.

    The payload is serialized with sorted keys and compact separators to
    ensure a deterministic representation before hashing.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def scoped_key(student_id: str, key: str) -> str:
    return f"{student_id}:{key}"


@transaction.atomic
def get_or_create_idempotent(student_id: str, key: str, payload: dict):
    """Get-or-create an idempotency record for the given key and payload.

    Behavior:
        - First request with a new key: create a record and return (False, rec).
        - Retry with the same key and payload after the first request
          finished: return (True, rec) so the stored response is replayed.
        - Retry while the first request is still running: raise ``Conflict``.
        - Same key with a different payload: raise ``IdempotencyConflict``.

    The create path runs in a nested savepoint so an IntegrityError only
    rolls back that block. The existing-record path takes a row lock
    (SELECT ... FOR UPDATE) where the database supports it.

    Returns:
        tuple[bool, IdempotencyKey]: (existing, rec).
    """
    scoped = scoped_key(student_id, key)
    h = _hash(payload)

    try:
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(
                key=scoped, request_hash=h, response_status=0, response_body={}
            )
            return False, rec  # created: caller will finalize the response
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(key=scoped)
        if rec.request_hash != h:
            raise IdempotencyConflict(key)
        if not rec.response_status:
            raise Conflict(f"idempotency key {key} in progress")
        return True, rec


def finalize(rec: IdempotencyKey, status_code: int, body: dict, order_id=None):
    """Persist the final response for an idempotent request.

    Subsequent retries return this stored response without re-running
    the checkout.
    """
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order"])


def release(rec: IdempotencyKey) -> None:
    """Forget a key whose request failed transiently, so a retry runs again."""
    rec.delete()
