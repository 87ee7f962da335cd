from django.urls import include, path

urlpatterns = [
    path("api/orders/", include("apps.orders.urls")),
    path("api/inventory/", include("apps.inventory.urls")),
    path("api/tokens/", include("apps.tokens.urls")),
    path("api/token-requests/", include("apps.token_requests.urls")),
    path("api/notifications/", include("apps.notifications.urls")),
    path("api/members/", include("apps.members.urls")),
    path("api/dashboard/", include("apps.dashboard.urls")),
    path("", include("apps.monitoring.urls")),
]
