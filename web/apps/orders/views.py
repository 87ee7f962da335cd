"""HTTP views for the orders app.

Views are kept intentionally small: they validate requests (via Pydantic),
map to domain DTOs, delegate to the domain service, and return an HTTP
response. Business errors come back as ``{"detail": CODE, "message": ...}``
with the status mapped in ``apps.common.errors``.

The views obtain a configured ``OrderService`` from
``providers.get_order_service()``, so tests can swap the service without
changing view logic.

Idempotency: when an ``Idempotency-Key`` header is provided, checkout is
processed once per (student, key). The first request creates a record and,
upon completion, stores the response. Retries with the same payload replay
the stored response (with ``Idempotent-Replay: true``). Reusing the key with
a different payload returns HTTP 409. Transient failures (lost races,
storage errors) are not stored, so a retry runs the checkout again.
"""

import logging

from django.utils import timezone
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.common.api import IsMember, error_response, paginated, validation_error_response
from apps.common.errors import Conflict, Forbidden, MarketError

from . import providers
from .cart import CartLine
from .domain import OrderStatus
from .idempotency import finalize, get_or_create_idempotent, release
from .schemas import CreateOrderDTO, OrderReadDTO, StatusUpdateDTO

logger = logging.getLogger("orders")


def _order_body(order) -> dict:
    return OrderReadDTO.from_domain(order).model_dump(mode="json", exclude_none=True)


class OrdersCollectionView(APIView):
    """List orders or create one from a cart.

    Students see their own orders; staff see every order and may filter by
    ``?status=``.
    """

    permission_classes = [IsMember]
    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        service = providers.get_order_service()
        try:
            if request.user.is_staff:
                orders = service.list_orders(request.GET.get("status") or None)
            else:
                orders = service.list_for_student(request.user.user_id)
        except ValueError:
            return Response({"detail": "INVALID_STATUS"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(paginated(request, orders, _order_body), status=200)

    def post(self, request):
        """Create a new order for the calling student.

        Returns:
            Response: One of the following responses.
            - 201 with the order when it is created.
            - Replayed status and body when the same idempotency key and
              payload are retried.
            - 409 ``IDEMPOTENCY_CONFLICT`` when the key is reused with a
              different payload.
            - 400 for payload validation errors or a bad pickup time.
            - 422 for cart rule violations and ``INSUFFICIENT_STOCK``.
            - 402 ``INSUFFICIENT_TOKENS``.
            - 503 ``UPSTREAM_UNAVAILABLE`` on unexpected storage failures.
        """
        student_id = request.user.user_id
        idem_key = request.headers.get("Idempotency-Key")

        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        # 2) Idempotency get-or-create
        rec = None
        if idem_key:
            try:
                existing, rec = get_or_create_idempotent(student_id, idem_key, request.data)
            except MarketError as e:
                return error_response(e)
            if existing:
                resp = Response(rec.response_body, status=rec.response_status)
                resp["Idempotent-Replay"] = "true"
                return resp

        # 3) Domain
        lines = [CartLine(item_id=i.item_id, quantity=i.quantity) for i in dto.items]
        service = providers.get_order_service()
        try:
            order = service.create_order(student_id, lines, dto.pickup_time)
        except Conflict as e:
            if rec:
                release(rec)
            return error_response(e)
        except MarketError as e:
            resp = error_response(e)
            if rec:
                finalize(rec, resp.status_code, resp.data)
            return resp
        except Exception:
            logger.exception("order creation failed", extra={"student_id": student_id})
            if rec:
                release(rec)
            return Response({"detail": "UPSTREAM_UNAVAILABLE"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        # 4) Response
        body = _order_body(order)
        if rec:
            finalize(rec, status.HTTP_201_CREATED, body, order_id=order.id)
        return Response(body, status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    permission_classes = [IsMember]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        try:
            order = providers.get_order_service().get_order(str(oid))
            if order.student_id != request.user.user_id and not request.user.is_staff:
                raise Forbidden(f"order {oid}")
        except MarketError as e:
            return error_response(e)
        return Response(_order_body(order), status=200)


class OrderStatusView(APIView):
    """Staff move an order to ready or completed."""

    permission_classes = [IsMember]

    def post(self, request, oid):
        try:
            dto = StatusUpdateDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        try:
            order = providers.get_order_service().update_status(
                str(oid), OrderStatus(dto.status), actor_is_staff=request.user.is_staff
            )
        except MarketError as e:
            return error_response(e)
        return Response(_order_body(order), status=200)


class OrderCancelView(APIView):
    """The owning student or staff cancel an order; stock and tokens come back."""

    permission_classes = [IsMember]

    def post(self, request, oid):
        try:
            order = providers.get_order_service().cancel(
                str(oid), request.user.user_id, actor_is_staff=request.user.is_staff
            )
        except MarketError as e:
            return error_response(e)
        return Response(_order_body(order), status=200)


class PickupSlotsView(APIView):
    permission_classes = [IsMember]

    def get(self, request):
        slots = providers.get_pickup_window().slots(timezone.now())
        return Response({"slots": [s.isoformat() for s in slots]}, status=200)
