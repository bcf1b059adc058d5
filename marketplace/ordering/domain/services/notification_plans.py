"""
Who hears about an order event, and what they are told.

Each builder returns NotificationIntents for the dispatcher; nothing here
talks to a channel.
"""

from collections import OrderedDict
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Q

from .dispatcher import NotificationIntent

User = get_user_model()

SELLER_DRIVEN = ("processing", "shipped", "out_for_delivery")


def admin_users() -> List:
    return list(User.objects.filter(Q(role="admin") | Q(is_superuser=True)).distinct())


def _intent(recipient, notification_type: str, content: str, subject: str, sender=None, product_id=None):
    wants_email = bool(recipient.email) and recipient.email_notifications
    return NotificationIntent(
        user_id=str(recipient.id),
        notification_type=notification_type,
        content=content,
        related_product_id=product_id,
        sender_id=str(sender.id) if sender is not None else None,
        email=recipient.email if wants_email else None,
        email_subject=subject,
    )


def placement_intents(order, lines, buyer, sellers: Dict, authorization_url: Optional[str] = None):
    buyer_name = buyer.full_name or "Buyer"
    intents = [
        _intent(
            buyer,
            "order",
            f"Your order (ID: {order.id}) has been placed. Complete payment to proceed."
            + (f" Pay here: {authorization_url}" if authorization_url else ""),
            "Your Order Confirmation",
            sender=buyer,
        )
    ]

    by_seller: "OrderedDict[str, list]" = OrderedDict()
    for line in lines:
        by_seller.setdefault(str(line.seller_id), []).append(line)

    for seller_id, seller_lines in by_seller.items():
        names = ", ".join(line.name for line in seller_lines)
        intents.append(
            _intent(
                sellers[seller_id],
                "order",
                f"You have a new order (ID: {order.id}) for {names}. Wait for payment confirmation.",
                "New Order for Your Product(s)",
                sender=buyer,
            )
        )

    for admin in admin_users():
        intents.append(
            _intent(
                admin,
                "order",
                f"A new order (ID: {order.id}) has been placed by {buyer_name} "
                f"for a total of {order.total_amount}. Payment is pending.",
                "New Order Placed - Admin Notification",
                sender=buyer,
            )
        )
    return intents


def status_intents(order, line, new_status: str, actor):
    """Buyer hears about seller-driven moves; the seller hears about delivery."""
    recipient = order.buyer if new_status in SELLER_DRIVEN else line.seller
    intents = [
        _intent(
            recipient,
            "order_status",
            f'Your order item "{line.name}" (Order ID: {order.id}) is now {new_status}.',
            "Order Status Update",
            sender=actor,
            product_id=line.product_id,
        )
    ]
    if new_status == "delivered":
        for admin in admin_users():
            intents.append(
                _intent(
                    admin,
                    "order_status",
                    f'Order item "{line.name}" (Order ID: {order.id}) has been marked as delivered '
                    f"by the buyer (ID: {order.buyer_id}).",
                    "Order Status Update - Admin Notification",
                    sender=actor,
                    product_id=line.product_id,
                )
            )
    return intents


def cancellation_intents(order, line, actor, refund_message: str):
    actor_role = "seller" if line.seller_id == actor.id else "buyer"
    recipient = order.buyer if actor_role == "seller" else line.seller
    intents = [
        _intent(
            recipient,
            "order_cancellation",
            f'The {actor_role} cancelled the order item "{line.name}" (Order ID: {order.id}). {refund_message}',
            "Order Item Cancellation",
            sender=actor,
            product_id=line.product_id,
        )
    ]
    for admin in admin_users():
        intents.append(
            _intent(
                admin,
                "order_cancellation",
                f'The {actor_role} (ID: {actor.id}) cancelled the order item "{line.name}" '
                f"(Order ID: {order.id}). {refund_message}",
                "Order Item Cancellation - Admin Notification",
                sender=actor,
                product_id=line.product_id,
            )
        )
    return intents
