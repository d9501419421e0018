from django.urls import path

from . import views

urlpatterns = [
    path("", views.EscrowLedgerListView.as_view(), name="escrow-list"),
    path("<uuid:pk>/", views.EscrowLedgerDetailView.as_view(), name="escrow-detail"),
]
