from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.ordering.api.serializers.order_serializers import (
    ErrorResponseSerializer,
    OrderSerializer,
    PlaceOrderRequestSerializer,
    PlaceOrderResponseSerializer,
    UpdateLineStatusRequestSerializer,
)
from marketplace.services import ErrorCodes, OrderService

ERROR_STATUS = {
    ErrorCodes.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCodes.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCodes.EXTERNAL_SERVICE_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCodes.CONSISTENCY_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCodes.TRANSACTION_TIMEOUT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCodes.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_RESPONSES = {
    400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
    403: OpenApiResponse(response=ErrorResponseSerializer, description="Caller not allowed"),
    404: OpenApiResponse(response=ErrorResponseSerializer, description="Order, line or user not found"),
    409: OpenApiResponse(response=ErrorResponseSerializer, description="Conflicting state"),
    500: OpenApiResponse(response=ErrorResponseSerializer, description="Internal or consistency error"),
    502: OpenApiResponse(response=ErrorResponseSerializer, description="Payment gateway failed after retries"),
    503: OpenApiResponse(response=ErrorResponseSerializer, description="Transaction timed out"),
}


def error_response(result) -> Response:
    http_status = ERROR_STATUS.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({"detail": result.error_detail, "code": result.error}, status=http_status)


class OrderViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_service(self) -> OrderService:
        return container.order_service()

    @extend_schema(
        operation_id="orders_create",
        summary="Place a multi-seller order",
        description="""
        **What it receives:**
        - `customer_id`: must be the authenticated user
        - `items`: lines with seller, product snapshot, price and quantity
        - `delivery_address`: country, region, locality, phone
        - `delivery_fee` and `total_amount` (must match items plus fee)

        **What it returns:**
        - The created order with pending status
        - The payment authorization URL and reference
        - Stock is reserved for every line, or nothing is written at all
        """,
        request=PlaceOrderRequestSerializer,
        responses={201: OpenApiResponse(response=PlaceOrderResponseSerializer), **ERROR_RESPONSES},
        tags=["Marketplace - Orders"],
    )
    def create(self, request):
        data = request.data
        result = self.get_service().place_order(
            request.user,
            data.get("customer_id"),
            data.get("total_amount"),
            data.get("items"),
            data.get("delivery_address"),
            data.get("delivery_fee"),
        )
        if not result.ok:
            return error_response(result)

        placed = result.value
        return Response(
            {
                "order": OrderSerializer(placed.order).data,
                "authorization_url": placed.authorization_url,
                "reference": placed.reference,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get order details",
        description="Visible to the buyer, any seller with a line in the order, and admins.",
        responses={200: OrderSerializer, **ERROR_RESPONSES},
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_order(request.user, pk)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_update_line_status",
        summary="Move an order line to its next status",
        description="""
        **What it receives:**
        - `line_index` (URL): zero-based position of the line in the order
        - `status`: processing, shipped, out_for_delivery (seller) or delivered (buyer)
        - Optional `seller_id` / `product_id` filters the line must match

        **What it returns:**
        - The updated order. Delivery also initiates the seller payout.
        """,
        request=UpdateLineStatusRequestSerializer,
        responses={200: OrderSerializer, **ERROR_RESPONSES},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["patch"], url_path=r"lines/(?P<line_index>\d+)/status")
    def update_line_status(self, request, pk=None, line_index=None):
        result = self.get_service().update_line_status(
            request.user,
            pk,
            int(line_index),
            request.data.get("status"),
            seller_id=request.data.get("seller_id"),
            product_id=request.data.get("product_id"),
        )
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_cancel_line",
        summary="Cancel a pending order line",
        description="""
        Cancels one pending line for its buyer or seller. Stock is restored, and
        when the payment has settled a refund of the line total is initiated.
        """,
        request=None,
        responses={200: OrderSerializer, **ERROR_RESPONSES},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"], url_path=r"lines/(?P<line_id>[0-9a-fA-F-]+)/cancel")
    def cancel_line(self, request, pk=None, line_id=None):
        result = self.get_service().cancel_line(request.user, pk, line_id)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_seller_orders",
        summary="List orders containing a seller's lines",
        description="Each order only shows the seller's own lines.",
        parameters=[OpenApiParameter(name="seller_id", type=str, location=OpenApiParameter.PATH)],
        responses={200: OrderSerializer(many=True), **ERROR_RESPONSES},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["get"], url_path=r"seller/(?P<seller_id>[^/.]+)")
    def seller_orders(self, request, seller_id=None):
        result = self.get_service().list_seller_orders(request.user, seller_id)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_buyer_orders",
        summary="List a buyer's orders",
        parameters=[OpenApiParameter(name="buyer_id", type=str, location=OpenApiParameter.PATH)],
        responses={200: OrderSerializer(many=True), **ERROR_RESPONSES},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["get"], url_path=r"buyer/(?P<buyer_id>[^/.]+)")
    def buyer_orders(self, request, buyer_id=None):
        result = self.get_service().list_buyer_orders(request.user, buyer_id)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value, many=True).data, status=status.HTTP_200_OK)
