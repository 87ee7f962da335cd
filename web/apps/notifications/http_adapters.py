"""HTTP push delivery with retries, circuit breaker, and context headers.

This module implements the ``DeliveryPort`` over HTTP using ``httpx``: every
newly stored notification is POSTed as JSON to the configured webhook
(``settings.NOTIFICATION_WEBHOOK_URL``). It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the gateway middleware.
- A circuit breaker so an unhealthy webhook is not hammered by every emit,
    letting a single trial push through after a timeout.
- A simple retry policy with exponential backoff for transport errors and
    5xx responses.
- ``Idempotency-Key`` set to the notification id, so the receiver can drop
    the duplicates that at-least-once retries produce.
"""

import threading
import time
from typing import Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import DeliveryPort, Notification

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")


# ---------------- Circuit Breaker ---------------- #

class DeliveryBreaker:
    """Circuit breaker around the webhook.

    ``fail_threshold`` failed pushes in a row open it; while open every push
    is refused at once. After ``reset_timeout`` seconds one trial push is let
    through (HALF_OPEN): success closes the breaker, failure re-opens it.
    Safe to share between threads.
    """

    CLOSED, OPEN, HALF_OPEN = "CLOSED", "OPEN", "HALF_OPEN"

    def __init__(self, fail_threshold: int, reset_timeout: float, clock=time.monotonic):
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._trial_running = False

    def _state(self) -> str:
        if self._opened_at is None:
            return self.CLOSED
        if self._clock() - self._opened_at >= self.reset_timeout:
            return self.HALF_OPEN
        return self.OPEN

    @property
    def state(self) -> str:
        with self._lock:
            return self._state()

    def acquire(self) -> str:
        """Admit one push and return the state it was admitted in.

        Raises:
            RuntimeError: ``CIRCUIT_OPEN`` while open, or while the single
                HALF_OPEN trial push is still running.
        """
        with self._lock:
            state = self._state()
            if state == self.OPEN or (state == self.HALF_OPEN and self._trial_running):
                raise RuntimeError("CIRCUIT_OPEN")
            if state == self.HALF_OPEN:
                self._trial_running = True
            return state

    def succeeded(self) -> None:
        with self._lock:
            self._failures = 0
            self._opened_at = None

    def failed(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.fail_threshold or self._opened_at is not None:
                self._opened_at = self._clock()

    def release(self) -> None:
        with self._lock:
            self._trial_running = False


_delivery_cb = DeliveryBreaker(
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base_seconds)."""
    return (
        getattr(settings, "HTTP_RETRY_MAX", 3),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
    )


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    if exc is not None:
        return True
    if resp is not None and 500 <= resp.status_code < 600:
        return True
    return False


def notification_payload(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "message": notification.message,
        "category": notification.category.value,
        "related_id": notification.related_id,
        "created_at": notification.created_at.isoformat(),
    }


# ---------------- Delivery Adapter ---------------- #

class HttpDeliveryClient(DeliveryPort):
    """Webhook client for notification push with retry and circuit breaker."""

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        self.webhook_url = webhook_url or settings.NOTIFICATION_WEBHOOK_URL
        self.timeout = timeout or getattr(settings, "HTTP_TIMEOUT_SECS", 2.0)

    def deliver(self, notification: Notification) -> bool:
        """Push one notification to the webhook.

        Business mappings:
        - 2xx → True
        - 409 → True (receiver already has this notification id)
        - other 4xx → False, not counted as a circuit failure

        Returns:
            bool: Whether the receiver accepted the notification.

        Raises:
            RuntimeError: When the circuit is open.
            httpx.RequestError: For network/transport errors after retries.
            httpx.HTTPStatusError: For 5xx responses after retries.
        """
        payload = notification_payload(notification)
        max_retries, backoff = _retry_policy()
        max_retries = max(1, max_retries)
        tries = 0

        state = _delivery_cb.acquire()
        headers = _request_headers({
            "Idempotency-Key": notification.id,
            "X-Circuit-State": state,
            "X-Retry-Count": "0",
        })

        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    resp = None
                    exc = None
                    try:
                        resp = client.post(self.webhook_url, json=payload, headers=headers)
                        if 200 <= resp.status_code < 300 or resp.status_code == 409:
                            _delivery_cb.succeeded()
                            return True
                        if 400 <= resp.status_code < 500:
                            _delivery_cb.succeeded()  # receiver answered; not a circuit failure
                            return False
                    except httpx.RequestError as e:
                        exc = e

                    tries += 1
                    headers["X-Retry-Count"] = str(tries)

                    if tries >= max_retries or not _should_retry(resp, exc):
                        _delivery_cb.failed()
                        if exc:
                            raise exc
                        resp.raise_for_status()
                        return False

                    sleep_s = backoff * (2 ** (tries - 1))
                    cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
                    time.sleep(min(sleep_s, cap))
        finally:
            _delivery_cb.release()
