from django.urls import path
from .views import OrdersCollectionView, RetrieveOrderView
from .views import OrderCancelView, OrderStatusView, PickupSlotsView
app_name = "orders"

urlpatterns = [
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create
    path("pickup-slots/", PickupSlotsView.as_view(), name="pickup-slots"),
    path("<uuid:oid>/", RetrieveOrderView.as_view(), name="orders-detail"),
    path("<uuid:oid>/status/", OrderStatusView.as_view(), name="orders-status"),
    path("<uuid:oid>/cancel/", OrderCancelView.as_view(), name="orders-cancel"),
]
