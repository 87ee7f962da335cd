from django.urls import path
from .views import MeView, RegisterView, StudentsView
app_name = "members"

urlpatterns = [
    path("", RegisterView.as_view(), name="members-register"),
    path("me/", MeView.as_view(), name="members-me"),
    path("students/", StudentsView.as_view(), name="members-students"),
]
