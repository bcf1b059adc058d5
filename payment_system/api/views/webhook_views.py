import logging

from django.http import HttpResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema

from infrastructure.container import container
from infrastructure.payments import PaymentException
from marketplace.ordering.domain.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def _client_ip(request) -> str:
    return request.META.get("HTTP_X_FORWARDED_FOR", "").split(",")[0] or request.META.get("REMOTE_ADDR", "unknown")


@method_decorator(csrf_exempt, name="dispatch")
class PaymentWebhookView(View):
    """Receives gateway webhooks; verifies them, then hands them to the ledger."""

    @extend_schema(
        operation_id="payment_webhook",
        summary="Payment gateway webhook",
        description="Confirms payments, completes payouts and refunds, and records full reversals. The signature is always verified.",
        request=OpenApiTypes.OBJECT,
        responses={
            200: OpenApiResponse(description="Event applied or ignored"),
            400: OpenApiResponse(description="Missing or invalid signature, or bad payload"),
        },
        tags=["Webhooks"],
        auth=[],
    )
    def post(self, request):
        signature = request.headers.get("stripe-signature")
        client_ip = _client_ip(request)

        if not signature:
            logger.warning(f"Webhook rejected: missing signature header from IP {client_ip}")
            return HttpResponse(status=400, content=b"Missing signature header.")

        try:
            event = container.payment().verify_webhook(request.body, signature)
        except PaymentException as e:
            logger.warning(f"Webhook rejected from IP {client_ip}: {e}")
            return HttpResponse(status=400, content=b"Webhook verification failed.")

        logger.info(f"Webhook {event.event_id} verified: {event.event_type}")
        try:
            handled = container.ledger_service().handle_event(event)
        except NotFoundError as e:
            # Unknown references are acknowledged so the gateway stops redelivering them
            logger.warning(f"Webhook {event.event_id} references unknown ledger data: {e.message}")
            return HttpResponse(status=200, content=b"Unknown reference.")

        return HttpResponse(status=200, content=b"Processed." if handled else b"Ignored.")
