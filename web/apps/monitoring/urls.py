from django.urls import path
from .api import health_view, ping_view
app_name = "monitoring"

urlpatterns = [
    path("ping/", ping_view, name="ping"),
    path("health/", health_view, name="health"),
]
