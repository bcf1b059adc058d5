from django.urls import path

from .api.views.verify_views import verify_payment
from .api.views.webhook_views import PaymentWebhookView

app_name = "payment_system"

urlpatterns = [
    path("webhook/", PaymentWebhookView.as_view(), name="webhook"),
    path("verify/<str:reference>/", verify_payment, name="verify"),
]
