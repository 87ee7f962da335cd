from django.urls import path
from .views import BalanceView, CreditView, DebitView, WeeklyResetView
app_name = "tokens"

urlpatterns = [
    path("reset/", WeeklyResetView.as_view(), name="tokens-reset"),
    path("<str:student_id>/", BalanceView.as_view(), name="tokens-balance"),
    path("<str:student_id>/debit/", DebitView.as_view(), name="tokens-debit"),
    path("<str:student_id>/credit/", CreditView.as_view(), name="tokens-credit"),
]
