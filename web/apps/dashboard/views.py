"""Staff dashboard: what needs attention at the market desk."""

from django.conf import settings
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.api import IsStaff
from apps.inventory.providers import get_inventory_catalog
from apps.orders.domain import OrderStatus
from apps.orders.providers import get_order_service
from apps.token_requests.domain import RequestStatus
from apps.token_requests.providers import get_token_request_service


class DashboardView(APIView):
    permission_classes = [IsStaff]

    def get(self, request):
        catalog = get_inventory_catalog()
        orders = get_order_service()
        threshold = getattr(settings, "LOW_STOCK_THRESHOLD", 5)
        return Response(
            {
                "pending_orders": len(orders.list_orders(OrderStatus.PENDING)),
                "ready_orders": len(orders.list_orders(OrderStatus.READY)),
                "pending_token_requests": len(get_token_request_service().list_requests(RequestStatus.PENDING)),
                "low_stock_items": len(catalog.low_stock(threshold)),
                "out_of_stock_items": len(catalog.out_of_stock()),
            },
            status=200,
        )
