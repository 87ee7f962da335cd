from django.urls import path
from .views import MarkAllReadView, MarkReadView, NotificationsView
app_name = "notifications"

urlpatterns = [
    path("", NotificationsView.as_view(), name="notifications-list"),
    path("read-all/", MarkAllReadView.as_view(), name="notifications-read-all"),
    path("<uuid:notification_id>/read/", MarkReadView.as_view(), name="notifications-read"),
]
