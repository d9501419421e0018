from django.urls import path

from . import views as my_views

urlpatterns = [
    path('initiate/', my_views.InitiatePaymentView.as_view(), name='payment-initiate'),
    path('verify/<uuid:transaction_id>/', my_views.VerifyPaymentView.as_view(), name='payment-verify'),
    path('confirm/<uuid:transaction_id>/', my_views.ConfirmManualPaymentView.as_view(), name='payment-confirm'),
    path('release/<uuid:transaction_id>/', my_views.ReleasePaymentView.as_view(), name='payment-release'),
    path('refund/<uuid:transaction_id>/', my_views.RequestRefundView.as_view(), name='payment-refund'),
    path('resolve-dispute/<uuid:transaction_id>/', my_views.ResolveDisputeView.as_view(), name='payment-resolve-dispute'),
    path('transactions/', my_views.TransactionListView.as_view(), name='transaction-list'),
    path('transactions/<uuid:transaction_id>/', my_views.TransactionDetailView.as_view(), name='transaction-detail'),
    path('webhook/<str:provider>/', my_views.PaymentWebhookView.as_view(), name='payment-webhook'),
]
