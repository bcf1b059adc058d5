"""
Order line state machine.

    pending -> processing -> shipped -> out_for_delivery -> delivered
       \\
        -> cancelled (cancellation path only)

Seller-driven states are ``processing``, ``shipped`` and ``out_for_delivery``;
only the buyer confirms ``delivered``.
"""

from typing import Dict, FrozenSet

from .exceptions import AuthorizationError, ConflictError, ValidationError

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"processing"}),
    "processing": frozenset({"shipped"}),
    "shipped": frozenset({"out_for_delivery"}),
    "out_for_delivery": frozenset({"delivered"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}

SELLER_STATUSES = frozenset({"processing", "shipped", "out_for_delivery"})
BUYER_STATUSES = frozenset({"delivered"})
TRANSITION_TARGETS = SELLER_STATUSES | BUYER_STATUSES


def validate_target(new_status: str) -> None:
    if new_status not in TRANSITION_TARGETS:
        allowed = ", ".join(sorted(TRANSITION_TARGETS))
        raise ValidationError(f"Invalid status '{new_status}'. Must be one of: {allowed}")


def check_role(line, new_status: str, user) -> None:
    """Seller-driven states need the line's seller; delivered needs the order's buyer."""
    if new_status in SELLER_STATUSES and line.seller_id != user.id:
        raise AuthorizationError(f"Only the seller can mark this item as {new_status}")
    if new_status in BUYER_STATUSES and line.order.buyer_id != user.id:
        raise AuthorizationError("Only the buyer can confirm delivery")


def check_transition(current: str, new_status: str) -> None:
    if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise ConflictError(f"Invalid status transition from {current} to {new_status}")


def is_leaving_pending(current: str, new_status: str) -> bool:
    return current == "pending" and new_status != "pending"
