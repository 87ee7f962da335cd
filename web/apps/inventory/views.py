"""HTTP views for the item catalogue and the Inventory Ledger.

Everyone identified can browse; only staff change the catalogue or move
stock directly. Students move stock only through checkout and cancel.
"""

from django.conf import settings
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.api import IsMember, IsStaff, error_response, validation_error_response
from apps.common.errors import MarketError

from . import providers
from .domain import Category
from .schemas import ItemCreateDTO, ItemReadDTO, ItemUpdateDTO, StockMoveDTO


def _item_body(item) -> dict:
    return ItemReadDTO.from_domain(item).model_dump(mode="json")


class ItemsCollectionView(APIView):
    def get_permissions(self):
        return [IsMember()] if self.request.method == "GET" else [IsStaff()]

    def get(self, request):
        category = request.GET.get("category") or None
        if category is not None and category not in {c.value for c in Category}:
            return Response({"detail": "INVALID_CATEGORY"}, status=status.HTTP_400_BAD_REQUEST)
        items = providers.get_inventory_catalog().list_items(category)
        return Response({"results": [_item_body(i) for i in items]}, status=200)

    def post(self, request):
        try:
            dto = ItemCreateDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        try:
            item = providers.get_inventory_catalog().add_item(**dto.model_dump())
        except MarketError as e:
            return error_response(e)
        return Response(_item_body(item), status=status.HTTP_201_CREATED)


class ItemDetailView(APIView):
    def get_permissions(self):
        return [IsMember()] if self.request.method == "GET" else [IsStaff()]

    def get(self, request, item_id):
        try:
            item = providers.get_inventory_catalog().get_item(str(item_id))
        except MarketError as e:
            return error_response(e)
        return Response(_item_body(item), status=200)

    def patch(self, request, item_id):
        try:
            dto = ItemUpdateDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        try:
            item = providers.get_inventory_catalog().update_item(str(item_id), **dto.model_dump(exclude_none=True))
        except MarketError as e:
            return error_response(e)
        return Response(_item_body(item), status=200)

    def delete(self, request, item_id):
        try:
            providers.get_inventory_catalog().delete_item(str(item_id))
        except MarketError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class _StockMoveView(APIView):
    permission_classes = [IsStaff]
    operation = ""

    def post(self, request, item_id):
        try:
            dto = StockMoveDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        ledger = providers.get_inventory_ledger()
        try:
            available = getattr(ledger, self.operation)(str(item_id), dto.quantity)
        except MarketError as e:
            return error_response(e)
        return Response({"item_id": str(item_id), "quantity": available}, status=200)


class ReserveView(_StockMoveView):
    operation = "reserve"


class ReleaseView(_StockMoveView):
    operation = "release"


class LowStockView(APIView):
    """Items at or under the low-stock threshold, and those out of stock."""

    permission_classes = [IsStaff]

    def get(self, request):
        catalog = providers.get_inventory_catalog()
        threshold = getattr(settings, "LOW_STOCK_THRESHOLD", 5)
        return Response(
            {
                "threshold": threshold,
                "low_stock": [_item_body(i) for i in catalog.low_stock(threshold)],
                "out_of_stock": [_item_body(i) for i in catalog.out_of_stock()],
            },
            status=200,
        )
