from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.ordering.api.serializers.order_serializers import ErrorResponseSerializer
from marketplace.ordering.api.views.order_views import error_response
from payment_system.api.serializers.transaction_serializers import PaymentStatusSerializer


@extend_schema(
    operation_id="payments_verify",
    summary="Verify a payment with the gateway",
    description="""
    Called when the buyer returns from checkout. Settles the order's payment
    if the gateway reports it as paid, and records a reversal if the payment
    has since been refunded in full. Already settled payments are returned
    as they are.
    """,
    parameters=[OpenApiParameter(name="reference", type=str, location=OpenApiParameter.PATH)],
    responses={
        200: PaymentStatusSerializer,
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Payment not completed"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Caller is not the buyer"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown reference"),
        502: OpenApiResponse(response=ErrorResponseSerializer, description="Gateway lookup failed after retries"),
    },
    tags=["Payments"],
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def verify_payment(request, reference):
    ledger_service = container.ledger_service()
    result = ledger_service.call("verify_payment", ledger_service.verify_payment, request.user, reference)
    if not result.ok:
        return error_response(result)
    return Response(PaymentStatusSerializer(result.value).data, status=status.HTTP_200_OK)
