"""
PlacementService - multi-seller order placement.

Validation is fail-fast and mutation-free. Seller payout sub-accounts are
provisioned next and committed on their own. Everything else (inventory
reservation, order and lines, payment intent, ledger, counters) happens in
one UnitOfWork: either all of it commits or none of it does.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import F

from infrastructure.payments import PaymentProviderInterface, PayoutDetails
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.infra.observability.metrics import order_value, orders_placed_total, unit_of_work_duration
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from marketplace.ordering.domain.exceptions import (
    AuthorizationError,
    NotFoundError,
    OrderLifecycleError,
    ValidationError,
)
from marketplace.ordering.domain.models.order import Order, OrderLine
from payment_system.domain.services.ledger_service import PaymentLedgerService
from utils.logging_utils import mask_value, sanitize_payload
from utils.retry_utils import RetryPolicy
from utils.service_base import BaseService
from utils.transaction_utils import UnitOfWork

from .dispatcher import SideEffectDispatcher, call_critical
from .notification_plans import placement_intents

User = get_user_model()
logger = logging.getLogger(__name__)

ITEM_FIELDS = ("seller_id", "quantity", "name", "product_id", "color", "price")
ADDRESS_FIELDS = ("country", "region", "locality", "phone")
LOCAL_PHONE = re.compile(r"^0[0-9]{9}$")
CENT = Decimal("0.01")


@dataclass
class LineRequest:
    seller_id: str
    product_id: str
    name: str
    color: str
    price: Decimal
    quantity: int
    size: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class PlacementRequest:
    buyer_id: str
    total_amount: Decimal
    delivery_fee: Decimal
    delivery_address: Dict[str, Any]
    lines: List[LineRequest] = field(default_factory=list)


@dataclass
class PlacementResult:
    order: Order
    authorization_url: str
    reference: str


def _decimal(value, message: str, max_digits: int = 10) -> Decimal:
    """Parse a money amount that fits a DecimalField(max_digits, decimal_places=2) exactly."""
    if value is None or isinstance(value, bool):
        raise ValidationError(message)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(message)
    if not result.is_finite():
        raise ValidationError(message)
    if abs(result) >= Decimal(10) ** (max_digits - 2):
        raise ValidationError(f"{message} (too large)")
    if result != result.quantize(CENT):
        raise ValidationError(f"{message} with at most two decimal places")
    return result


def _uuid(value, label: str) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {label}: {value}")


def _quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("Quantity must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError("Quantity must be a positive integer")
    return value


def normalize_payout_phone(phone: str) -> str:
    """254712345678 / +254712345678 -> 0712345678."""
    phone = (phone or "").strip()
    if phone.startswith("+254"):
        phone = "0" + phone[4:]
    elif phone.startswith("254"):
        phone = "0" + phone[3:]
    return phone


def validate_placement(user, customer_id, total_amount, items, delivery_address, delivery_fee) -> PlacementRequest:
    """
    Check a placement request without touching the database.

    Raises:
        AuthorizationError: customer_id is not the caller
        ValidationError: anything malformed, missing or inconsistent
    """
    orders = getattr(settings, "ORDERS", {})

    if str(customer_id) != str(user.id):
        raise AuthorizationError("You can only place orders for yourself")

    if not items or not isinstance(items, (list, tuple)):
        raise ValidationError("Cannot place an order: cart is empty")

    fee = _decimal(delivery_fee, "Delivery fee must be a non-negative number")
    if fee < 0:
        raise ValidationError("Delivery fee must be a non-negative number")

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object")
        missing = [name for name in ITEM_FIELDS if item.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required item fields: {', '.join(missing)}")
        quantity = _quantity(item["quantity"])
        price = _decimal(item["price"], "Price must be a positive number")
        if price <= 0:
            raise ValidationError("Price must be a positive number")
        lines.append(
            LineRequest(
                seller_id=_uuid(item["seller_id"], "seller_id"),
                product_id=str(item["product_id"]),
                name=str(item["name"]),
                color=str(item["color"]),
                price=price,
                quantity=quantity,
                size=item.get("size") or None,
            )
        )

    if not isinstance(delivery_address, dict):
        raise ValidationError("Delivery address is required")
    for name in ADDRESS_FIELDS:
        if not delivery_address.get(name):
            raise ValidationError(f"Missing required delivery address field: {name}")
    phone_pattern = orders.get("PHONE_PATTERN", r"^\+?254[0-9]{9}$")
    if not re.match(phone_pattern, str(delivery_address["phone"])):
        raise ValidationError("Valid phone number required in delivery address")

    total = _decimal(total_amount, "Total amount must be a number", max_digits=12)
    expected = sum((line.line_total for line in lines), Decimal("0")) + fee
    tolerance = orders.get("TOTAL_TOLERANCE", Decimal("0.01"))
    if abs(total - expected) > tolerance:
        raise ValidationError(f"Total amount {total} does not match item prices plus delivery fee ({expected})")

    address = {name: delivery_address[name] for name in ADDRESS_FIELDS}
    return PlacementRequest(
        buyer_id=str(user.id),
        total_amount=total,
        delivery_fee=fee,
        delivery_address=address,
        lines=lines,
    )


class PlacementService(BaseService):
    """
    Places a multi-seller order.

    Dependencies:
    - PaymentProviderInterface: sub-accounts and payment intent
    - InventoryService: conditional reservation
    - PaymentLedgerService: Transaction and items
    - SideEffectDispatcher: post-commit notifications
    """

    def __init__(
        self,
        payment: PaymentProviderInterface,
        inventory: InventoryService,
        ledger: PaymentLedgerService,
        dispatcher: SideEffectDispatcher,
        policy: Optional[RetryPolicy] = None,
    ):
        super().__init__()
        self.payment = payment
        self.inventory = inventory
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.policy = policy or RetryPolicy.from_settings()

    def place(self, user, customer_id, total_amount, items, delivery_address, delivery_fee) -> PlacementResult:
        with tracer.start_as_current_span("order.place") as span:
            add_span_attributes(span, **{"user.id": user.id, "order.items": len(items or [])})
            try:
                request = validate_placement(user, customer_id, total_amount, items, delivery_address, delivery_fee)
                buyer, sellers = self._load_parties(request)
                self._provision_sellers(sellers)
                with unit_of_work_duration.labels(operation="place_order").time():
                    result = self._commit_order(request, buyer, sellers)
            except OrderLifecycleError as e:
                orders_placed_total.labels(status=e.code).inc()
                span.set_attribute("order.error", e.code)
                raise

            orders_placed_total.labels(status="placed").inc()
            order_value.observe(float(result.order.total_amount))
            add_span_attributes(span, **{"order.id": result.order.id})
            return result

    def _load_parties(self, request: PlacementRequest):
        try:
            buyer = User.objects.get(pk=request.buyer_id)
        except User.DoesNotExist:
            raise NotFoundError(f"Customer {request.buyer_id} not found")
        if not buyer.email:
            raise ValidationError("Valid user email required for payment")

        seller_ids = {line.seller_id for line in request.lines}
        sellers = {str(seller.id): seller for seller in User.objects.filter(pk__in=seller_ids)}
        for seller_id in seller_ids:
            if seller_id not in sellers:
                raise NotFoundError(f"Seller {seller_id} not found")
        return buyer, sellers

    def _provision_sellers(self, sellers: Dict[str, Any]) -> None:
        """Give every seller without one a payout sub-account. Each save commits on its own."""
        orders = getattr(settings, "ORDERS", {})
        for seller in sellers.values():
            if seller.has_payout_subaccount():
                continue

            if not seller.full_name or not seller.phone_number:
                raise ValidationError(f"Seller {seller.id} missing required full name or phone for payouts")
            phone = normalize_payout_phone(seller.phone_number)
            if not LOCAL_PHONE.match(phone):
                raise ValidationError(f"Invalid phone number format for seller {seller.id}")

            details = PayoutDetails(
                business_name=seller.full_name,
                phone_number=phone,
                bank_code=orders.get("PAYOUT_BANK_CODE", "231"),
                country=orders.get("PAYOUT_COUNTRY", "KE"),
                email=seller.email,
            )
            code = call_critical(self.policy, "create_subaccount", self.payment.create_subaccount, seller, details)
            User.objects.filter(pk=seller.pk).update(payout_subaccount_code=code)
            seller.payout_subaccount_code = code
            self.logger.info(f"Provisioned payout sub-account for seller {seller.id}")

    def _commit_order(self, request: PlacementRequest, buyer, sellers) -> PlacementResult:
        commission_rate = getattr(settings, "ORDERS", {}).get("COMMISSION_RATE", Decimal("0.05"))

        with UnitOfWork("place_order") as uow:
            self.inventory.reserve(uow, [(line.product_id, line.quantity) for line in request.lines])

            order = Order.objects.create(
                buyer=buyer,
                delivery_fee=request.delivery_fee,
                delivery_address=request.delivery_address,
            )
            lines = OrderLine.objects.bulk_create(
                [
                    OrderLine(
                        order=order,
                        position=position,
                        seller_id=line.seller_id,
                        product_id=line.product_id,
                        name=line.name,
                        color=line.color,
                        size=line.size,
                        price=line.price,
                        quantity=line.quantity,
                        commission_rate=commission_rate,
                    )
                    for position, line in enumerate(request.lines)
                ]
            )
            order.refresh_derived_fields(lines)

            uow.check_deadline("initialize_payment")
            init = call_critical(
                self.policy,
                "initialize_payment",
                self.payment.initialize_payment,
                order,
                buyer.email,
                request.delivery_fee,
            )
            self.ledger.open_ledger(uow, order, lines, init)

            User.objects.filter(pk=buyer.pk).update(
                pending_orders_count=F("pending_orders_count") + len(lines),
                order_count=F("order_count") + 1,
            )
            per_seller: Dict[str, int] = {}
            for line in lines:
                per_seller[str(line.seller_id)] = per_seller.get(str(line.seller_id), 0) + 1
            for seller_id, count in per_seller.items():
                User.objects.filter(pk=seller_id).update(pending_orders_count=F("pending_orders_count") + count)

            self.dispatcher.schedule(uow, placement_intents(order, lines, buyer, sellers, init.authorization_url))

        self.logger.info(
            f"Placed order {order.id} for {mask_value(buyer.email)}: "
            f"{len(lines)} lines, {len(per_seller)} sellers, total {order.total_amount}"
            f", deliver to {sanitize_payload(order.delivery_address, ADDRESS_FIELDS, masked_keys=('phone',))}"
        )
        return PlacementResult(order=order, authorization_url=init.authorization_url, reference=init.reference)
