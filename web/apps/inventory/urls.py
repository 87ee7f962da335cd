from django.urls import path
from .views import ItemsCollectionView, ItemDetailView, LowStockView, ReleaseView, ReserveView
app_name = "inventory"

urlpatterns = [
    path("items/", ItemsCollectionView.as_view(), name="items-collection"),  # GET list / POST create
    path("items/low-stock/", LowStockView.as_view(), name="items-low-stock"),
    path("items/<uuid:item_id>/", ItemDetailView.as_view(), name="items-detail"),
    path("items/<uuid:item_id>/reserve/", ReserveView.as_view(), name="items-reserve"),
    path("items/<uuid:item_id>/release/", ReleaseView.as_view(), name="items-release"),
]
