"""
URL configuration for the billing app.

All routes are prefixed with /api/v1/billing/ when included in the main URLconf.
"""

from django.urls import path

from billing import views
from billing.webhooks.views import gateway_return, gateway_webhook

app_name = "billing"

urlpatterns = [
    path("orders/", views.CreateOrderView.as_view(), name="create_order"),
    # Gateway callbacks
    path("webhooks/<str:gateway>/", gateway_webhook, name="gateway_webhook"),
    path("return/<str:gateway>/", gateway_return, name="gateway_return"),
    # Operator
    path("charges/generate/", views.GenerateChargesView.as_view(), name="generate_charges"),
    path("late-fees/apply/", views.ApplyLateFeesView.as_view(), name="apply_late_fees"),
    path(
        "subscribers/<uuid:subscriber_id>/balance/",
        views.AccountBalanceView.as_view(),
        name="subscriber_balance",
    ),
    path(
        "payments/<uuid:payment_id>/link/",
        views.LinkPaymentView.as_view(),
        name="link_payment",
    ),
]
