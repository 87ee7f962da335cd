from django.urls import path
from .views import DecisionView, TokenRequestDetailView, TokenRequestsCollectionView
app_name = "token_requests"

urlpatterns = [
    path("", TokenRequestsCollectionView.as_view(), name="token-requests-collection"),
    path("<uuid:request_id>/", TokenRequestDetailView.as_view(), name="token-requests-detail"),
    path("<uuid:request_id>/decision/", DecisionView.as_view(), name="token-requests-decision"),
]
